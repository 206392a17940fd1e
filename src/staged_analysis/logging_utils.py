"""Shared logging helpers."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


_CONSOLE = Console(width=120, stderr=True)
_LOGGER_CACHE: dict[str, logging.Logger] = {}
_LEVEL = logging.INFO

PACKAGE_LOGGER = "staged_analysis"


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Return a rich-backed logger living under the package namespace."""
    qualified = name if name.startswith(PACKAGE_LOGGER) else f"{PACKAGE_LOGGER}.{name}"
    if qualified in _LOGGER_CACHE:
        return _LOGGER_CACHE[qualified]

    handler = RichHandler(console=_CONSOLE, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))

    logger = logging.getLogger(qualified)
    logger.setLevel(_LEVEL if level is None else level)
    logger.addHandler(handler)
    logger.propagate = False

    _LOGGER_CACHE[qualified] = logger
    return logger


def set_global_log_level(level: int) -> None:
    global _LEVEL
    _LEVEL = level
    for logger in _LOGGER_CACHE.values():
        logger.setLevel(level)
