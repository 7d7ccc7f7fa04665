"""Owner of the current configuration and entry point for front ends."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from .client import fetch_available_models, generate_response
from .config import is_valid, load_config, save_config
from .extractor import extract_prompt, extract_quoted_original, extract_sender_info, selection_prompt
from .models import Config, GenerationRequest

NO_SELECTION_MESSAGE = "No text selected. Please select text with your mouse first."
SELECTION_FAILED_MESSAGE = "Failed to get text selection."
GENERATION_FAILED_MESSAGE = "Failed to generate response. Please check your internet connection and API key."


@dataclass(slots=True)
class Outcome:
    """Result of handling one selection for a host front end."""

    ok: bool
    message: Optional[str] = None
    request: Optional[GenerationRequest] = None


class Assistant:
    """Run generations against a single, explicitly owned configuration.

    Saving preferences swaps in a copy of the new configuration; a generation
    that already started keeps the configuration it was started with. Only
    one generation runs at a time.
    """

    def __init__(
        self,
        config: Config,
        *,
        path: Optional[Path] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = dataclasses.replace(config)
        self._path = path
        self._transport = transport
        self._lock = threading.Lock()

    @classmethod
    def from_disk(cls, path: Optional[Path] = None, **kwargs) -> "Assistant":
        config = load_config(path)
        if config is None:
            logging.warning("Configuration unavailable; the assistant stays unconfigured.")
            config = Config()
        return cls(config, path=path, **kwargs)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def is_configured(self) -> bool:
        return is_valid(self._config)

    def save_preferences(self, config: Config) -> bool:
        snapshot = dataclasses.replace(config)
        if not save_config(snapshot, self._path):
            logging.warning("Failed to save configuration")
            return False
        self._config = snapshot
        logging.info("Configuration saved")
        return True

    def list_models(self) -> List[str]:
        if not self.is_configured:
            return []
        return fetch_available_models(self._config.openai_api_key, transport=self._transport)

    def generate(self, text: Optional[str], *, use_marker: bool = False) -> GenerationRequest:
        """Generate a reply for ``text``.

        By default the whole text is the prompt. With ``use_marker`` the
        prompt is the ``/aw:`` instruction and any quoted reply and sender
        found in the text are attached to the request.
        """

        if use_marker:
            request = GenerationRequest(prompt=extract_prompt(text))
            request.original_email = extract_quoted_original(text)
            sender = extract_sender_info(request.original_email)
            if sender is not None:
                request.sender_name, request.sender_email = sender
        else:
            request = GenerationRequest(prompt=selection_prompt(text))

        with self._lock:
            config = self._config
            logging.info("Sending request to OpenAI (model %s)", config.openai_model)
            generate_response(config, request, transport=self._transport)
        logging.info("API call result: %s", request.state.value)
        return request

    def process_selection(
        self,
        read_selection: Callable[[], Optional[str]],
        insert_text: Callable[[str], None],
    ) -> Outcome:
        """Read the host selection, generate, and hand the text back."""

        try:
            selected = read_selection()
        except Exception as exc:  # noqa: BLE001 - host callbacks fail in host-specific ways
            logging.warning("Failed to read selection: %s", exc)
            return Outcome(ok=False, message=SELECTION_FAILED_MESSAGE)

        if not selected or not selected.strip():
            return Outcome(ok=False, message=NO_SELECTION_MESSAGE)

        request = self.generate(selected)
        if not request.succeeded or request.response is None:
            return Outcome(ok=False, message=GENERATION_FAILED_MESSAGE, request=request)

        insert_text(request.response)
        return Outcome(ok=True, request=request)
