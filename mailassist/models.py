"""Dataclasses describing configuration and generation requests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_HOTKEY = "ctrl+shift+g"
DEFAULT_SYSTEM_PROMPT = "You are a helpful email writing assistant."
PLACEHOLDER_API_KEY = "your_openai_api_key_here"

# Used when the live model listing is unavailable.
FALLBACK_MODELS = (
    ("gpt-4o", "GPT-4o (Most capable, expensive)"),
    ("gpt-4o-mini", "GPT-4o Mini (Recommended, balanced)"),
    ("gpt-4-turbo", "GPT-4 Turbo (Fast, capable)"),
    ("gpt-4", "GPT-4 (Capable, slower)"),
    ("gpt-3.5-turbo", "GPT-3.5 Turbo (Fast, affordable)"),
)


@dataclass(slots=True)
class Config:
    """User configuration stored on disk."""

    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    hotkey: str = DEFAULT_HOTKEY
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class RequestState(str, Enum):
    UNSENT = "unsent"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class GenerationRequest:
    """A single user-initiated generation.

    ``response`` is only populated once the request has succeeded. A request
    leaves the ``UNSENT`` state exactly once and is never retried.
    """

    prompt: Optional[str] = None
    original_email: Optional[str] = None
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    response: Optional[str] = None
    state: RequestState = RequestState.UNSENT
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is RequestState.SUCCEEDED


class SenderInfo(NamedTuple):
    name: str
    email: str
