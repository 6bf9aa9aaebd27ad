"""Logging configuration for the bumpbot CLI."""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "bumpbot"

LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(level: Optional[str]) -> int:
    """Map a level name (CLI option, then LOG_LEVEL, then info) to a logging level."""
    name = (level or os.getenv("LOG_LEVEL", "info")).lower()
    return LEVELS.get(name, logging.INFO)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a rich handler to the ``bumpbot`` logger and set its level."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(level))

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        # Keep messages out of the root logger to avoid duplicates
        logger.propagate = False
    return logger


def streams_output(logger: Optional[logging.Logger] = None) -> bool:
    """Child process output is streamed when debug logging is on."""
    logger = logger or logging.getLogger(LOGGER_NAME)
    return logger.isEnabledFor(logging.DEBUG)
