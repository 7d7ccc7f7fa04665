"""Helpers for pulling prompts and reply context out of composed text.

The quoted-original and sender helpers are heuristics. They look for the
usual "On ... wrote:" attribution, ``> `` quote markers and a ``From:``
header line, which can misfire on arbitrary text.
"""

from __future__ import annotations

from typing import Optional

from .models import SenderInfo

PROMPT_PREFIX = "/aw:"
REPLY_ATTRIBUTION = "On "
QUOTE_MARKER = "> "
FROM_LABEL = "From:"
UNKNOWN_SENDER = "Unknown"


def selection_prompt(text: Optional[str]) -> Optional[str]:
    """Use the whole selection as the prompt, verbatim."""

    if not text or not text.strip():
        return None
    return text


def extract_prompt(text: Optional[str]) -> Optional[str]:
    """Return the instruction following ``/aw:`` on its line."""

    if not text:
        return None
    start = text.find(PROMPT_PREFIX)
    if start < 0:
        return None
    remainder = text[start + len(PROMPT_PREFIX):]
    prompt = remainder.split("\n", 1)[0].strip()
    return prompt or None


def extract_quoted_original(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    start = text.find(REPLY_ATTRIBUTION)
    if start < 0:
        start = text.find(QUOTE_MARKER)
    if start < 0:
        return None
    return text[start:]


def extract_sender_info(headers: Optional[str]) -> Optional[SenderInfo]:
    """Split the first ``From:`` line into display name and address."""

    if not headers:
        return None
    start = headers.find(FROM_LABEL)
    if start < 0:
        return None

    value = headers[start + len(FROM_LABEL):].split("\n", 1)[0].strip()

    open_bracket = value.find("<")
    if open_bracket >= 0:
        close_bracket = value.find(">", open_bracket)
        if close_bracket < 0:
            return None
        return SenderInfo(
            name=value[:open_bracket].strip().strip('"'),
            email=value[open_bracket + 1:close_bracket],
        )
    if "@" in value:
        return SenderInfo(name=UNKNOWN_SENDER, email=value)
    return None
