"""Logging configuration using loguru.

Library modules only call ``logger``; entry points (CLI, API) call
:func:`configure_logging` once to pick sinks and verbosity.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level: Optional[str] = None, log_file: Optional[Union[str, Path]] = None) -> None:
    """Replace loguru's default sink.

    Args:
        level: Console level; defaults to CHANREC_LOG_LEVEL or INFO.
        log_file: Optional file sink with rotation, always at DEBUG.
    """
    level = (level or os.getenv("CHANREC_LOG_LEVEL", "INFO")).upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    if log_file is not None:
        logger.add(
            Path(log_file),
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format=FILE_FORMAT,
            enqueue=True,  # engine callbacks log from their own thread
        )


__all__ = ["configure_logging", "logger"]
