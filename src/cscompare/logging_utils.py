"""Logging configuration utilities for cscompare."""

import logging
import os
from typing import Optional

_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


def configure_logging(level: Optional[str] = None, default: str = "INFO") -> None:
    """Configure application-wide logging once.

    Records go to stderr; stdout is reserved for diff output. An unknown
    level name raises ``ValueError`` even when logging is already set up.
    """
    log_level = (level or os.getenv("LOG_LEVEL") or default).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"Unknown log level: {log_level}")

    if logging.getLogger().handlers:
        return

    logging.basicConfig(level=log_level, format=_LOG_FORMAT)
