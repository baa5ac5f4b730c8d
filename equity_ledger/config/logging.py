"""
Logging configuration.

Configures the loguru logger with file rotation for ledger processes.
"""

import sys

from loguru import logger

from equity_ledger.config.settings import settings


def setup_logging(log_file: str = "logs/ledger.log") -> None:
    """Configure logger with stderr output and a rotated file sink."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )
