"""
Logging setup.
All modules log through the shared loguru logger; the host calls configure_logging() once.
"""
from __future__ import annotations

import sys
from typing import Any

from loguru import logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """
    Replace loguru's default handler with a single sink.

    Args:
        level: Minimum level to emit (e.g. "DEBUG", "INFO")
        sink: Any loguru sink; defaults to stderr

    Returns:
        The handler id, usable with logger.remove()
    """
    logger.remove()
    return logger.add(sink or sys.stderr, level=level, format=LOG_FORMAT)
