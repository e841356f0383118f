"""
Logging configuration for jsonnet-bundler.

Modules log through ``logging.getLogger(__name__)``; everything below the
``jsonnet_bundler`` logger is routed to a single stderr handler here.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_root_logger = logging.getLogger("jsonnet_bundler")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str | int = "WARNING",
    format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format or DEFAULT_FORMAT))
    handler.setLevel(level)
    _root_logger.addHandler(handler)
