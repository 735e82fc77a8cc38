"""Logging setup: module loggers under ``depsafe``, rendered through Rich."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from depsafe.config.schema import LOG_LEVELS

LOGGER_NAME = "depsafe"


def configure_logging(level: str = "warning", console: Optional[Console] = None) -> logging.Logger:
    """Install a single RichHandler on the ``depsafe`` logger.

    Calling this again replaces the handler instead of stacking another.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(LOG_LEVELS.get(level.lower(), logging.WARNING))
    return logger
