import pytest

from appointment_reminders.config import ConfigError, load_config
from appointment_reminders.models import ReminderKind, ReminderWindow

_ENV_VARS = (
    "REMINDERS_TIMEZONE",
    "TZ",
    "DB_PATH",
    "STORAGE_BACKEND",
    "LOCALE",
    "REMINDER_WINDOW_24H",
    "REMINDER_WINDOW_1H",
    "LOOKAHEAD_DAYS",
    "SCAN_CONCURRENCY",
    "SCAN_MINUTE",
    "RETENTION_DAYS",
    "PURGE_BATCH_SIZE",
    "SWEEP_HOUR",
    "SWEEP_MINUTE",
    "ONESIGNAL_APP_ID",
    "ONESIGNAL_REST_API_KEY",
    "ONESIGNAL_API_URL",
    "ONESIGNAL_TIMEOUT",
    "RETRY_ATTEMPTS",
    "RETRY_DELAY",
    "RETRY_MAX_DELAY",
    "RETRY_JITTER",
    "LOG_FILE",
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "data" / "reminders.db"))
    return monkeypatch


def test_defaults(env, tmp_path):
    config = load_config()
    assert config.timezone.key == "Asia/Jerusalem"
    assert config.locale == "he"
    assert config.storage_backend == "sqlite"
    assert config.storage_path == tmp_path / "data" / "reminders.db"
    assert config.reminder.windows[ReminderKind.DAY_BEFORE] == ReminderWindow(23.0, 25.0)
    assert config.reminder.windows[ReminderKind.HOUR_BEFORE] == ReminderWindow(0.5, 1.5)
    assert config.reminder.lookahead_days == 2
    assert config.retention.retention_days == 30
    assert config.retention.batch_size == 500
    assert (config.retention.sweep_hour, config.retention.sweep_minute) == (2, 0)
    assert config.onesignal.enabled is False
    assert config.onesignal.api_url == "https://api.onesignal.com/notifications"


def test_overrides(env):
    env.setenv("REMINDERS_TIMEZONE", "Europe/Berlin")
    env.setenv("REMINDER_WINDOW_24H", "22-26")
    env.setenv("REMINDER_WINDOW_1H", "0.25-1.75")
    env.setenv("RETENTION_DAYS", "7")
    env.setenv("SCAN_CONCURRENCY", "4")
    env.setenv("LOCALE", "en")
    env.setenv("ONESIGNAL_APP_ID", "app")
    env.setenv("ONESIGNAL_REST_API_KEY", "key")
    config = load_config()
    assert config.timezone.key == "Europe/Berlin"
    assert config.reminder.windows[ReminderKind.DAY_BEFORE] == ReminderWindow(22.0, 26.0)
    assert config.reminder.windows[ReminderKind.HOUR_BEFORE] == ReminderWindow(0.25, 1.75)
    assert config.retention.retention_days == 7
    assert config.reminder.scan_concurrency == 4
    assert config.locale == "en"
    assert config.onesignal.enabled is True


def test_tz_variable_is_fallback(env):
    env.setenv("TZ", "UTC")
    assert load_config().timezone.key == "UTC"


@pytest.mark.parametrize(
    "name,value",
    [
        ("REMINDERS_TIMEZONE", "Mars/Olympus_Mons"),
        ("REMINDER_WINDOW_24H", "abc"),
        ("REMINDER_WINDOW_24H", "25-23"),
        ("RETENTION_DAYS", "zero"),
        ("RETENTION_DAYS", "0"),
        ("SCAN_MINUTE", "75"),
        ("SWEEP_HOUR", "24"),
        ("STORAGE_BACKEND", "postgres"),
        ("ONESIGNAL_APP_ID", "app-without-key"),
    ],
)
def test_invalid_values_raise(env, name, value):
    env.setenv(name, value)
    with pytest.raises(ConfigError):
        load_config()
