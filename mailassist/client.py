"""OpenAI chat-completion client.

Every call is a single blocking HTTP exchange, and its timeout bounds the
whole exchange rather than each read. Failures are raised as
``LLMClientError`` subclasses so transport, parse and schema problems stay
distinguishable; ``generate_response`` and ``fetch_available_models`` fold
them into a plain unsuccessful result for callers.
"""

from __future__ import annotations

import json
import logging
from time import monotonic
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .config import MIN_API_KEY_LENGTH, is_valid
from .models import DEFAULT_SYSTEM_PROMPT, FALLBACK_MODELS, Config, GenerationRequest, RequestState

API_BASE_URL = "https://api.openai.com/v1"
CHAT_COMPLETIONS_URL = f"{API_BASE_URL}/chat/completions"
MODELS_URL = f"{API_BASE_URL}/models"

CHAT_TIMEOUT = 30.0
MODELS_TIMEOUT = 10.0
MAX_TOKENS = 500
TEMPERATURE = 0.7

MODEL_PREFIXES = ("gpt-4", "gpt-3.5")
EXCLUDED_MODEL_SUFFIXES = ("-vision", "-instruct", "-audio-preview")


class LLMClientError(RuntimeError):
    """Base class for failures talking to the completion API."""


class InvalidAPIKeyError(LLMClientError):
    """Raised before any request when the API key cannot be valid."""


class TransportError(LLMClientError):
    """Raised on connection failures and timeouts."""


class APIStatusError(TransportError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"API returned HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class ResponseParseError(LLMClientError):
    """Raised when the response body is not a JSON object."""


class SchemaError(LLMClientError):
    """Raised when valid JSON lacks the expected structure."""


def build_chat_payload(
    request: GenerationRequest,
    config: Config,
    *,
    max_tokens: int = MAX_TOKENS,
    temperature: float = TEMPERATURE,
) -> Dict[str, Any]:
    """Assemble the chat-completion body: one system and one user message."""

    return {
        "model": config.openai_model,
        "messages": [
            {"role": "system", "content": config.system_prompt or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": request.prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def post_chat_completion(
    config: Config,
    payload: Dict[str, Any],
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    return _request(
        "POST",
        CHAT_COMPLETIONS_URL,
        api_key=config.openai_api_key or "",
        timeout=CHAT_TIMEOUT,
        payload=payload,
        transport=transport,
    )


def get_models(api_key: Optional[str], *, transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    if not api_key or len(api_key) < MIN_API_KEY_LENGTH:
        raise InvalidAPIKeyError("An API key of at least 11 characters is required to list models")
    return _request("GET", MODELS_URL, api_key=api_key, timeout=MODELS_TIMEOUT, transport=transport)


def extract_message(doc: Dict[str, Any]) -> str:
    """Return the trimmed content of the first choice."""

    choices = doc.get("choices") if isinstance(doc, dict) else None
    if not isinstance(choices, list) or not choices:
        raise SchemaError("Response contains no choices")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise SchemaError("Response choice has no message content")
    return content.strip()


def extract_model_ids(doc: Dict[str, Any]) -> List[str]:
    """Return chat model ids from a model listing, in provider order."""

    data = doc.get("data") if isinstance(doc, dict) else None
    if not isinstance(data, list):
        return []
    ids: List[str] = []
    for entry in data:
        model_id = entry.get("id") if isinstance(entry, dict) else None
        if not isinstance(model_id, str):
            continue
        if model_id.startswith(MODEL_PREFIXES) and not model_id.endswith(EXCLUDED_MODEL_SUFFIXES):
            ids.append(model_id)
    return ids


def fetch_available_models(
    api_key: Optional[str], *, transport: Optional[httpx.BaseTransport] = None
) -> List[str]:
    """List supported models, or an empty list when the listing fails."""

    try:
        models = extract_model_ids(get_models(api_key, transport=transport))
    except LLMClientError as exc:
        logging.debug("Model listing unavailable: %s", exc)
        return []
    logging.debug("Fetched %d models from API", len(models))
    return models


def model_choices(current_model: Optional[str], fetched: List[str]) -> List[Tuple[str, str]]:
    """Build ``(label, model_id)`` options for a model picker.

    Falls back to the built-in catalog when ``fetched`` is empty and keeps the
    currently configured model selectable.
    """

    if fetched:
        options = [(model_id, model_id) for model_id in fetched]
    else:
        options = [(label, model_id) for model_id, label in FALLBACK_MODELS]
    if current_model and current_model not in {model_id for _, model_id in options}:
        options.append((f"{current_model} (current)", current_model))
    return options


def generate_response(
    config: Config,
    request: GenerationRequest,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> bool:
    """Run ``request`` through the completion API.

    Returns True and fills ``request.response`` on success. Any failure marks
    the request as failed and returns False; invalid configurations never
    reach the network.
    """

    if request.state is not RequestState.UNSENT:
        raise ValueError(f"Generation request already {request.state.value}")

    if not is_valid(config):
        return _fail(request, "OpenAI API key is missing or invalid")
    if not request.prompt:
        return _fail(request, "No prompt to send")

    payload = build_chat_payload(request, config)
    logging.debug(
        "Sending chat completion: model=%s system_prompt=%d chars prompt=%d chars",
        payload["model"],
        len(payload["messages"][0]["content"]),
        len(request.prompt),
    )

    try:
        text = extract_message(post_chat_completion(config, payload, transport=transport))
    except LLMClientError as exc:
        logging.warning("Generation failed: %s", exc)
        return _fail(request, str(exc))

    request.response = text
    request.state = RequestState.SUCCEEDED
    logging.debug("Generated %d chars", len(text))
    return True


def _fail(request: GenerationRequest, reason: str) -> bool:
    request.state = RequestState.FAILED
    request.error = reason
    return False


def _request(
    method: str,
    url: str,
    *,
    api_key: str,
    timeout: float,
    payload: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    headers = {"Authorization": f"Bearer {api_key}"}
    # httpx times each phase separately; ``timeout`` also caps the whole exchange.
    deadline = monotonic() + timeout
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            with client.stream(method, url, headers=headers, json=payload) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    if monotonic() > deadline:
                        raise TransportError(f"{method} {url} exceeded {timeout:g}s")
                    chunks.append(chunk)
    except httpx.HTTPError as exc:
        raise TransportError(f"{method} {url} failed: {exc}") from exc
    body = b"".join(chunks)

    if not response.is_success:
        raise APIStatusError(response.status_code, _error_detail(response, body))

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ResponseParseError(f"Invalid JSON in response from {url}: {exc}") from exc
    if not isinstance(data, dict):
        raise ResponseParseError(f"Expected a JSON object from {url}")
    return data


def _error_detail(response: httpx.Response, body: bytes) -> str:
    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(body)
    except ValueError:
        return text or response.reason_phrase
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return text or response.reason_phrase
