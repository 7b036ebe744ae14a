"""Loguru logging configuration."""

import os
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logging(level: str | None = None, sink=None) -> None:
    """
    Route daily_review logs to a single sink.

    Args:
        level: Minimum level name; falls back to ``LOG_LEVEL``, then INFO.
        sink: Where records go, stderr by default.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")

    logger.remove()
    logger.add(
        sink if sink is not None else sys.stderr,
        format=LOG_FORMAT,
        level=level.upper(),
        colorize=sink is None,
        backtrace=True,
        diagnose=False,
    )
