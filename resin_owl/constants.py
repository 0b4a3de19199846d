"""Constants used across the resin-owl package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "resin-owl"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / f".{APP_NAME}" / DEFAULT_CONFIG_FILENAME

DEFAULT_LOG_PATH = Path.home() / f".{APP_NAME}" / f"{APP_NAME}.log"
DEFAULT_LOG_MAX_BYTES = 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3

BACKEND_ODYSSEY = "odyssey"
BACKEND_NANODLP = "nanodlp"
SUPPORTED_BACKENDS = (BACKEND_ODYSSEY, BACKEND_NANODLP)

DEFAULT_ODYSSEY_URL = "http://localhost:12357"
DEFAULT_NANODLP_URL = "http://localhost"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
DEFAULT_STATUS_POLL_SECONDS = 2.0

# NanoDLP reports heights in device units; 6400 units per millimetre.
NANODLP_UNITS_PER_MM = 6400.0
