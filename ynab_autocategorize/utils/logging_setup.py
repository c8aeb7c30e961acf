"""
Diagnostic logging for the auto-categorizer

The CLI calls configure_logging() once; everything else just asks for
get_logger(__name__).
"""
import logging
import os
import sys
from typing import Optional

PACKAGE_LOGGER_NAME = "ynab_autocategorize"
LOG_LEVEL_ENV = "YNAB_AUTOCAT_LOG_LEVEL"

_configured = False


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.WARNING


def configure_logging(level: Optional[str] = None) -> None:
    """
    Send package log records to stderr

    Args:
        level: Level name such as 'DEBUG'. Falls back to
            $YNAB_AUTOCAT_LOG_LEVEL, then WARNING.
    """
    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    # Stay silent until the CLI configures output
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not _configured and not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
