"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from . import constants

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: str = "INFO",
    *,
    log_path: Optional[Path] = None,
    max_bytes: int = constants.DEFAULT_LOG_MAX_BYTES,
    backup_count: int = constants.DEFAULT_LOG_BACKUP_COUNT,
    log_network: bool = False,
) -> None:
    """Configure root logging handlers.

    Parameters
    ----------
    level:
        Log level name, e.g. "INFO".
    log_path:
        Optional filesystem path for a size-rotated file handler. When absent,
        only console logging is configured.
    max_bytes, backup_count:
        Rotation policy for the file handler. ``max_bytes=0`` disables rotation.
    log_network:
        When true, keep verbose HTTP library logging to aid diagnostics.
    """

    logging.captureWarnings(True)

    for handler in list(logging.getLogger().handlers):
        logging.getLogger().removeHandler(handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)

    if not log_network:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
        logging.getLogger("aiohttp.client").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
