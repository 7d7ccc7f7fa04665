"""Top-level package for mailassist."""

__version__ = "0.1.0"

from . import assistant, client, config, extractor  # noqa: E402

__all__ = ["assistant", "client", "config", "extractor", "__version__"]
