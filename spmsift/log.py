"""Logging setup for the spmsift CLI (loguru).

The library disables its own logger on import; ``setup_logging`` turns it
back on. stdout is reserved for the rendered analysis, so every sink writes
to stderr or a file.
"""

import sys
from typing import Optional

from loguru import logger


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging with loguru."""
    logger.remove()
    logger.enable("spmsift")

    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level="DEBUG" if debug else "WARNING",
        colorize=None,
    )

    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
        )
