"""
Logging setup for the trip settlement package.
"""
import os
import sys
from typing import Optional, Union

from loguru import logger

from .config import LogLevel


def get_logger(name: str):
    """
    Get a logger bound to the given module name.

    Args:
        name: Module name (typically __name__)
    """
    return logger.bind(name=name)


def setup_logging(
    log_level: Union[LogLevel, str] = LogLevel.INFO,
    log_file: Optional[str] = None
) -> None:
    """
    Configure loguru sinks for the application.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Optional file path to also write logs to
    """
    if isinstance(log_level, str):
        log_level = LogLevel(log_level.upper())

    logger.remove()

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level=log_level.value,
        colorize=True,
    )

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        logger.add(
            log_file,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} - {message}"
            ),
            level=log_level.value,
            rotation="10 MB",
            compression="zip",
        )

    logger.debug(f"Logging initialized with level {log_level.value}")
