"""Logging setup for the fieldvault CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "fieldvault"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a rich handler to the ``fieldvault`` logger (idempotent)."""
    logger = logging.getLogger(_LOGGER_NAME)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            show_time=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
