"""Logging configuration for layermap."""

import sys
from typing import TextIO

from loguru import logger


def configure_logging(*, verbose: bool = False, sink: TextIO | None = None) -> None:
    """Route loguru output to ``sink``, stderr by default (stdout carries MCP stdio)."""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    fmt = "{level.icon} {name}:{line} {message}" if verbose else "{level.icon} {message}"
    logger.add(sink or sys.stderr, level=level, format=fmt)
