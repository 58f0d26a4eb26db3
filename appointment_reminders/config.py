"""Application configuration helpers for the reminder service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models.reminder import DEFAULT_WINDOWS, ReminderKind, ReminderWindow


_logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Jerusalem"
ONESIGNAL_API_URL = "https://api.onesignal.com/notifications"


class ConfigError(RuntimeError):
    """Raised when application configuration is invalid."""


def _read_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be an integer") from exc
    if min_value is not None and value < min_value:
        raise ConfigError(f"{name} must be >= {min_value}")
    return value


def _read_float(name: str, default: float, *, min_value: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be a number") from exc
    if min_value is not None and value < min_value:
        raise ConfigError(f"{name} must be >= {min_value}")
    return value


def _read_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass(slots=True)
class RetryConfig:
    """Retry parameters for push delivery."""

    attempts: int = 3
    delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.3


@dataclass(slots=True)
class OneSignalConfig:
    """Credentials and transport settings for the OneSignal REST API."""

    app_id: str | None = None
    api_key: str | None = None
    api_url: str = ONESIGNAL_API_URL
    timeout: float = 10.0
    retry: RetryConfig = field(default_factory=RetryConfig)

    @property
    def enabled(self) -> bool:
        return bool(self.app_id and self.api_key)


@dataclass(slots=True)
class ReminderConfig:
    """Configuration for the hourly reminder scan."""

    windows: Dict[ReminderKind, ReminderWindow] = field(default_factory=lambda: dict(DEFAULT_WINDOWS))
    lookahead_days: int = 2
    scan_concurrency: int = 1
    scan_minute: int = 0


@dataclass(slots=True)
class RetentionConfig:
    """Configuration for the daily dedup marker cleanup."""

    retention_days: int = 30
    batch_size: int = 500
    sweep_hour: int = 2
    sweep_minute: int = 0


@dataclass(slots=True)
class Config:
    """Container for application configuration."""

    reminder: ReminderConfig
    retention: RetentionConfig
    onesignal: OneSignalConfig
    storage_path: Path
    timezone: ZoneInfo
    locale: str = "he"
    storage_backend: str = "sqlite"
    log_file: str = "logs/app.log"


def _parse_window(name: str, default: ReminderWindow) -> ReminderWindow:
    raw = _read_str(name)
    if raw is None:
        return default
    start_raw, sep, end_raw = raw.partition("-")
    if not sep:
        raise ConfigError(f"{name} must look like START-END, got {raw!r}")
    try:
        start, end = float(start_raw), float(end_raw)
    except ValueError as exc:
        raise ConfigError(f"{name} bounds must be numbers, got {raw!r}") from exc
    return ReminderWindow(start, end)


def _load_timezone(name: str | None) -> ZoneInfo:
    if not name:
        name = DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone {name!r}") from exc


def _validate_config(config: Config) -> None:
    if config.storage_backend not in {"sqlite", "memory"}:
        raise ConfigError("STORAGE_BACKEND must be 'sqlite' or 'memory'")
    if config.storage_path.exists() and config.storage_path.is_dir():
        raise ConfigError("DB_PATH must point to a file path")
    if not config.locale:
        raise ConfigError("LOCALE must not be empty")
    for kind, window in config.reminder.windows.items():
        if window.start_hours < 0 or window.end_hours < window.start_hours:
            raise ConfigError(f"Reminder window for {kind.value} is invalid: {window}")
    if not 0 <= config.reminder.scan_minute <= 59:
        raise ConfigError("SCAN_MINUTE must be between 0 and 59")
    if not 0 <= config.retention.sweep_hour <= 23:
        raise ConfigError("SWEEP_HOUR must be between 0 and 23")
    if not 0 <= config.retention.sweep_minute <= 59:
        raise ConfigError("SWEEP_MINUTE must be between 0 and 59")
    retry = config.onesignal.retry
    if retry.max_delay < retry.delay:
        raise ConfigError("RETRY_MAX_DELAY must be greater than or equal to RETRY_DELAY")
    if bool(config.onesignal.app_id) != bool(config.onesignal.api_key):
        raise ConfigError("ONESIGNAL_APP_ID and ONESIGNAL_REST_API_KEY must be set together")


def _log_summary(config: Config) -> None:
    windows = ", ".join(f"{kind.value}={window}" for kind, window in config.reminder.windows.items())
    _logger.info(
        "Configuration loaded: backend=%s, db=%s, timezone=%s, locale=%s, windows=[%s], lookahead=%sd, concurrency=%s, retention=%sd, transport=%s",
        config.storage_backend,
        config.storage_path,
        config.timezone.key,
        config.locale,
        windows,
        config.reminder.lookahead_days,
        config.reminder.scan_concurrency,
        config.retention.retention_days,
        "onesignal" if config.onesignal.enabled else "console",
    )


def load_config() -> Config:
    """Load configuration from environment variables."""

    storage_raw = os.getenv("DB_PATH") or "data/reminders.db"
    storage_path = Path(storage_raw).expanduser()
    storage_backend = (os.getenv("STORAGE_BACKEND") or "sqlite").strip().lower()

    reminder = ReminderConfig(
        windows={
            ReminderKind.DAY_BEFORE: _parse_window(
                "REMINDER_WINDOW_24H", DEFAULT_WINDOWS[ReminderKind.DAY_BEFORE]
            ),
            ReminderKind.HOUR_BEFORE: _parse_window(
                "REMINDER_WINDOW_1H", DEFAULT_WINDOWS[ReminderKind.HOUR_BEFORE]
            ),
        },
        lookahead_days=_read_int("LOOKAHEAD_DAYS", 2, min_value=1),
        scan_concurrency=_read_int("SCAN_CONCURRENCY", 1, min_value=1),
        scan_minute=_read_int("SCAN_MINUTE", 0, min_value=0),
    )
    retention = RetentionConfig(
        retention_days=_read_int("RETENTION_DAYS", 30, min_value=1),
        batch_size=_read_int("PURGE_BATCH_SIZE", 500, min_value=1),
        sweep_hour=_read_int("SWEEP_HOUR", 2, min_value=0),
        sweep_minute=_read_int("SWEEP_MINUTE", 0, min_value=0),
    )
    onesignal = OneSignalConfig(
        app_id=_read_str("ONESIGNAL_APP_ID"),
        api_key=_read_str("ONESIGNAL_REST_API_KEY"),
        api_url=_read_str("ONESIGNAL_API_URL") or ONESIGNAL_API_URL,
        timeout=_read_float("ONESIGNAL_TIMEOUT", 10.0, min_value=0.1),
        retry=RetryConfig(
            attempts=_read_int("RETRY_ATTEMPTS", 3, min_value=1),
            delay=_read_float("RETRY_DELAY", 1.0, min_value=0.0),
            max_delay=_read_float("RETRY_MAX_DELAY", 30.0, min_value=0.0),
            jitter=_read_float("RETRY_JITTER", 0.3, min_value=0.0),
        ),
    )

    timezone = _load_timezone(os.getenv("REMINDERS_TIMEZONE") or os.getenv("TZ"))
    locale = (os.getenv("LOCALE") or "he").strip()

    if storage_backend == "sqlite":
        storage_path.parent.mkdir(parents=True, exist_ok=True)

    config = Config(
        reminder=reminder,
        retention=retention,
        onesignal=onesignal,
        storage_path=storage_path,
        timezone=timezone,
        locale=locale,
        storage_backend=storage_backend,
        log_file=os.getenv("LOG_FILE") or "logs/app.log",
    )

    _validate_config(config)
    _log_summary(config)

    return config
