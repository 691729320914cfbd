"""Logging setup using loguru."""

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """
    Replace loguru's default handler with a single stderr sink.

    enqueue=True keeps logging safe from the capture and detection threads.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT, enqueue=True)
