"""Configuration loader for resin-owl."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class BackendConfig:
    kind: str = constants.BACKEND_ODYSSEY
    url: str = constants.DEFAULT_ODYSSEY_URL
    request_timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(slots=True)
class StatusConfig:
    poll_interval_seconds: float = constants.DEFAULT_STATUS_POLL_SECONDS


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    max_bytes: int = constants.DEFAULT_LOG_MAX_BYTES
    backup_count: int = constants.DEFAULT_LOG_BACKUP_COUNT
    log_network: bool = False


@dataclass(slots=True)
class ResinOwlConfig:
    backend: BackendConfig
    status: StatusConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def _default_url(kind: str) -> str:
    if kind == constants.BACKEND_NANODLP:
        return constants.DEFAULT_NANODLP_URL
    return constants.DEFAULT_ODYSSEY_URL


def load_config(path: Optional[Path] = None) -> ResinOwlConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "backend": {
                "kind": constants.BACKEND_ODYSSEY,
                "request_timeout_seconds": str(
                    constants.DEFAULT_REQUEST_TIMEOUT_SECONDS
                ),
            },
            "status": {
                "poll_interval_seconds": str(constants.DEFAULT_STATUS_POLL_SECONDS),
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "max_bytes": str(constants.DEFAULT_LOG_MAX_BYTES),
                "backup_count": str(constants.DEFAULT_LOG_BACKUP_COUNT),
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    kind = parser.get("backend", "kind").strip().lower()
    parser.set("backend", "kind", kind)
    if not parser.get("backend", "url", fallback="").strip():
        # The default URL depends on which backend was chosen.
        parser.set("backend", "url", _default_url(kind))

    backend = BackendConfig(
        kind=kind,
        url=parser.get("backend", "url").strip(),
        request_timeout_seconds=max(
            0.1,
            parser.getfloat(
                "backend",
                "request_timeout_seconds",
                fallback=constants.DEFAULT_REQUEST_TIMEOUT_SECONDS,
            ),
        ),
    )

    status = StatusConfig(
        poll_interval_seconds=max(
            0.1,
            parser.getfloat(
                "status",
                "poll_interval_seconds",
                fallback=constants.DEFAULT_STATUS_POLL_SECONDS,
            ),
        ),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        max_bytes=max(
            0,
            parser.getint(
                "logging", "max_bytes", fallback=constants.DEFAULT_LOG_MAX_BYTES
            ),
        ),
        backup_count=max(
            0,
            parser.getint(
                "logging",
                "backup_count",
                fallback=constants.DEFAULT_LOG_BACKUP_COUNT,
            ),
        ),
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return ResinOwlConfig(
        backend=backend,
        status=status,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )


def save_config(config: ResinOwlConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
