"""Loguru sink configuration for the CLI."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", *, verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink at ``level``.

    Args:
        level: Log level name (from ROPS_LOG_LEVEL)
        verbose: Force DEBUG regardless of ``level``
    """
    resolved = "DEBUG" if verbose else level.upper()
    logger.remove()
    try:
        logger.add(sys.stderr, level=resolved, format=LOG_FORMAT)
    except ValueError:
        logger.add(sys.stderr, level="INFO", format=LOG_FORMAT)
        logger.warning(f"Unknown log level '{level}', using INFO")
