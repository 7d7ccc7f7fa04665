"""Persisted configuration management.

The configuration lives in an INI style key file under the per-user
configuration directory. Values are escaped the way GLib key files escape
them so that multi-line system prompts stay on a single line.
"""

from __future__ import annotations

import configparser
import contextlib
import logging
import os
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from .models import (
    DEFAULT_HOTKEY,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    PLACEHOLDER_API_KEY,
    Config,
)

APP_NAME = "mailassist"
CONFIG_FILE_NAME = "config.conf"
MIN_API_KEY_LENGTH = 11

_HEADER = (
    "# mailassist configuration\n"
    "# Get your OpenAI API key from: https://platform.openai.com/api-keys\n"
    "\n"
)

# Config attribute -> (section, key)
_FIELDS = (
    ("openai_api_key", "openai", "api_key"),
    ("openai_model", "openai", "model"),
    ("system_prompt", "openai", "system_prompt"),
    ("hotkey", "ui", "hotkey"),
    ("user_name", "user", "name"),
    ("user_email", "user", "email"),
)
_SECTIONS = ("openai", "ui", "user")

_DEFAULT_FILE_VALUES = {
    "openai_api_key": PLACEHOLDER_API_KEY,
    "openai_model": DEFAULT_MODEL,
    "system_prompt": DEFAULT_SYSTEM_PROMPT,
    "hotkey": DEFAULT_HOTKEY,
    "user_name": "Your Name",
    "user_email": "your.email@example.com",
}


def default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return (Path(base) / APP_NAME / CONFIG_FILE_NAME).expanduser()


CONFIG_PATH = default_config_path()


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or saved."""


def is_valid(config: Optional[Config]) -> bool:
    """Return True when ``config`` carries a usable API key."""

    if config is None:
        return False
    key = config.openai_api_key
    return bool(key) and key != PLACEHOLDER_API_KEY and len(key) >= MIN_API_KEY_LENGTH


def load_config(path: Optional[Path] = None) -> Optional[Config]:
    """Load the configuration, creating a default file on first use.

    Returns ``None`` when the file exists but cannot be read or parsed; the
    caller should then treat the assistant as unconfigured.
    """

    path = CONFIG_PATH if path is None else Path(path)
    parser = _new_parser()
    try:
        if not path.exists():
            _write(path, _DEFAULT_FILE_VALUES)
            logging.warning("Created default config at %s. Please edit it with your OpenAI API key.", path)
        with path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except (OSError, UnicodeDecodeError, configparser.Error) as exc:
        logging.warning("Failed to load config from %s: %s", path, exc)
        return None

    values = {attr: _get(parser, section, key) for attr, section, key in _FIELDS}
    return Config(
        openai_api_key=values["openai_api_key"],
        openai_model=values["openai_model"] or DEFAULT_MODEL,
        system_prompt=values["system_prompt"] or DEFAULT_SYSTEM_PROMPT,
        hotkey=values["hotkey"] or DEFAULT_HOTKEY,
        user_name=values["user_name"],
        user_email=values["user_email"],
    )


def save_config(config: Config, path: Optional[Path] = None) -> bool:
    """Regenerate the configuration file from ``config``.

    Fields set to ``None`` are left out so they load back as defaults.
    """

    path = CONFIG_PATH if path is None else Path(path)
    data = {k: v for k, v in asdict(config).items() if v is not None}
    try:
        _write(path, data)
    except OSError as exc:
        logging.warning("Failed to save config to %s: %s", path, exc)
        return False
    logging.debug("Configuration saved to %s", path)
    return True


def update_config(path: Optional[Path] = None, **kwargs: Any) -> Config:
    config = load_config(path)
    if config is None:
        raise ConfigError(f"Failed to parse configuration file: {CONFIG_PATH if path is None else path}")
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            raise ConfigError(f"Unknown configuration key: {key}")
    if not save_config(config, path):
        raise ConfigError("Failed to write configuration file")
    return config


def _new_parser() -> configparser.ConfigParser:
    # Repeated sections merge and the last repeated key wins.
    return configparser.ConfigParser(interpolation=None, delimiters=("=",), strict=False)


def _get(parser: configparser.ConfigParser, section: str, key: str) -> Optional[str]:
    raw = parser.get(section, key, fallback=None)
    return None if raw is None else unescape_value(raw)


def _write(path: Path, data: dict) -> None:
    parser = _new_parser()
    for section in _SECTIONS:
        parser.add_section(section)
    for attr, section, key in _FIELDS:
        if attr in data:
            parser.set(section, key, escape_value(str(data[attr])))

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(_HEADER)
            parser.write(fh)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "t": "\t", "r": "\r", "s": " "}


def escape_value(value: str) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    # configparser strips surrounding whitespace from values.
    if escaped.startswith(" "):
        escaped = "\\s" + escaped[1:]
    if escaped.endswith(" "):
        escaped = escaped[:-1] + "\\s"
    return escaped


def unescape_value(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append(_UNESCAPES.get(nxt, "\\" + nxt))
    return "".join(out)
