"""Database migrations for the storage layer."""
from __future__ import annotations

import sqlite3
from typing import Callable, NamedTuple, Tuple


class Migration(NamedTuple):
    version: int
    upgrade: Callable[[sqlite3.Connection], None]
    downgrade: Callable[[sqlite3.Connection], None]


def _upgrade_v1(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            recipient_token TEXT
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS appointments (
            id TEXT PRIMARY KEY,
            date TEXT NOT NULL,
            time TEXT,
            user_id TEXT,
            status TEXT NOT NULL DEFAULT 'scheduled',
            plate_number TEXT,
            owner_name TEXT
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS reminders (
            appointment_id TEXT NOT NULL,
            reminder_type TEXT NOT NULL,
            sent_at TEXT NOT NULL,
            PRIMARY KEY (appointment_id, reminder_type)
        )
        """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, date)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_reminders_sent_at ON reminders(sent_at)")


def _downgrade_v1(conn: sqlite3.Connection) -> None:
    conn.execute("DROP INDEX IF EXISTS idx_reminders_sent_at")
    conn.execute("DROP INDEX IF EXISTS idx_appointments_status_date")
    conn.execute("DROP TABLE IF EXISTS reminders")
    conn.execute("DROP TABLE IF EXISTS appointments")
    conn.execute("DROP TABLE IF EXISTS users")


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(version=1, upgrade=_upgrade_v1, downgrade=_downgrade_v1),
)


__all__ = ["MIGRATIONS", "Migration"]
