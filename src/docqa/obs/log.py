"""Process-level loguru configuration."""

from __future__ import annotations

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at `level`.

    Library modules only call `logger.*`; the application entrypoint calls
    this once at startup.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT, backtrace=False)
