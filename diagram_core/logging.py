"""
Logging helpers for the editing engine.

All modules log through children of the ``diagram_core`` logger so a host
application can tune the engine's verbosity in one place.
"""

import logging
import sys
from typing import Optional, TextIO

_root_logger = logging.getLogger("diagram_core")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str | int = "INFO",
    format: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the engine's root logger.

    Args:
        level: Log level name (DEBUG, INFO, ...) or numeric level
        format: Custom format string
        stream: Output stream (defaults to stderr)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format or DEFAULT_FORMAT))
    _root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a child logger of the engine root logger."""
    return _root_logger.getChild(name)
