import logging
import sqlite3

import pytest

from appointment_reminders import cli


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("ONESIGNAL_APP_ID", "ONESIGNAL_REST_API_KEY", "REMINDERS_TIMEZONE", "TZ", "STORAGE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "data" / "reminders.db"))
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "app.log"))
    root = logging.getLogger()
    previous = list(root.handlers)
    yield monkeypatch
    for handler in list(root.handlers):
        if handler not in previous:
            root.removeHandler(handler)
            handler.close()
    for handler in previous:
        if handler not in root.handlers:
            root.addHandler(handler)


def test_parser_defaults_to_run():
    parser = cli._build_parser()
    assert parser.parse_args([]).command == "run"
    args = parser.parse_args(["test-reminder", "--user-id", "u1"])
    assert (args.command, args.user_id) == ("test-reminder", "u1")


def test_migrate_creates_schema(env, tmp_path):
    assert cli.main(["migrate"]) == 0
    conn = sqlite3.connect(tmp_path / "data" / "reminders.db")
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert {"appointments", "users", "reminders", "schema_version"} <= tables


def test_scan_and_sweep_with_memory_backend(env, capsys):
    env.setenv("STORAGE_BACKEND", "memory")
    assert cli.main(["scan"]) == 0
    assert "scanned=0 sent=0" in capsys.readouterr().out
    assert cli.main(["sweep"]) == 0
    assert "deleted=0" in capsys.readouterr().out


def test_test_reminder_for_unknown_user_fails(env):
    env.setenv("STORAGE_BACKEND", "memory")
    assert cli.main(["test-reminder", "--user-id", "ghost"]) == 1
    assert cli.main(["test-reminder"]) == 1


def test_invalid_configuration_exits_with_error(env):
    env.setenv("REMINDERS_TIMEZONE", "Nowhere/Land")
    assert cli.main(["scan"]) == 2


def test_refused_test_reminder_is_not_reported_as_error(env, capsys):
    env.setenv("STORAGE_BACKEND", "memory")
    assert cli.main(["test-reminder", "--user-id", "ghost"]) == 1
    err = capsys.readouterr().err
    assert "Test notification refused (not-found)" in err
    assert " WARNING " in err
    assert " ERROR " not in err
