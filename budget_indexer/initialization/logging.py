"""
Indexer Initialization - Logging Module.

Configures loguru logger for the indexer.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from budget_indexer.config.settings import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure logger with console output and file rotation."""
    level = (level or settings.log_level).upper()
    log_file = log_file if log_file is not None else settings.log_file

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        level=level,
    )
    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )
