"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"
_LOGGING_CONFIGURED = False


def configure_logging(verbose: bool = False) -> None:
    """Install the console handler; ``verbose`` switches the root level to DEBUG."""
    global _LOGGING_CONFIGURED
    level = logging.DEBUG if verbose else logging.INFO
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
        _LOGGING_CONFIGURED = True
    logging.getLogger().setLevel(level)
    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO if verbose else logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)
