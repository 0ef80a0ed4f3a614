from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass, replace
import json
import logging
import os
from pathlib import Path
from typing import Mapping

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
# S3 returns at most this many keys per listing call.
MAX_PAGE_SIZE = 1000


@dataclass
class ConsoleSettings:
    """Simple container for persistent console settings."""

    page_size: int = 1000
    delimiter: str = "/"
    region: str = "us-east-1"
    log_level: str = "WARNING"

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


def _positive_int(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _page_size(value: object, default: int) -> int:
    return min(_positive_int(value, default), MAX_PAGE_SIZE)


def _non_empty_str(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _delimiter(value: object, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _log_level(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip().upper() in LOG_LEVELS:
        return value.strip().upper()
    return default


def sanitize_settings(data: Mapping[str, object]) -> ConsoleSettings:
    defaults = ConsoleSettings()
    return ConsoleSettings(
        page_size=_page_size(data.get("page_size"), defaults.page_size),
        delimiter=_delimiter(data.get("delimiter"), defaults.delimiter),
        region=_non_empty_str(data.get("region"), defaults.region),
        log_level=_log_level(data.get("log_level"), defaults.log_level),
    )


def apply_environment(settings: ConsoleSettings, environ: Mapping[str, str] | None = None) -> ConsoleSettings:
    """Override settings from ``S3_REGION``, ``S3_PAGE_SIZE`` and ``S3_CONSOLE_LOG_LEVEL``."""

    environ = os.environ if environ is None else environ
    return replace(
        settings,
        region=_non_empty_str(environ.get("S3_REGION"), settings.region),
        page_size=_page_size(environ.get("S3_PAGE_SIZE"), settings.page_size),
        log_level=_log_level(environ.get("S3_CONSOLE_LOG_LEVEL"), settings.log_level),
    )


class SettingsStorage:
    """JSON-backed persistence for :class:`ConsoleSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_console_settings.json"
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ConsoleSettings:
        if not self._path.exists():
            return ConsoleSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return ConsoleSettings()
        if not isinstance(data, dict):
            return ConsoleSettings()
        return sanitize_settings(data)

    def save(self, settings: ConsoleSettings) -> None:
        payload = asdict(sanitize_settings(asdict(settings)))
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
