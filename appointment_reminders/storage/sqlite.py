"""SQLite-backed appointment store and dedup ledger."""
from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, TypeVar

from ..errors import StoreFailure
from ..logging_config import get_category_logger
from ..models import Appointment, AppointmentStatus, DedupKey, DedupMarker, ReminderKind, User
from ..utils.datetime import UTC, ensure_aware
from .base import AppointmentStore, DedupLedger
from .migrations import MIGRATIONS

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fixed width so that string order in SQL matches chronological order.
_INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_instant(value: datetime) -> str:
    return ensure_aware(value, "instant").astimezone(UTC).strftime(_INSTANT_FORMAT)


def parse_instant(value: str) -> datetime:
    return datetime.strptime(value, _INSTANT_FORMAT).replace(tzinfo=UTC)


class SQLiteDatabase:
    """Owns the SQLite connection, its lock and the schema version."""

    def __init__(self, path: Path) -> None:
        self._path = path
        if str(path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._apply_migrations()

    def __enter__(self) -> "SQLiteDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def path(self) -> Path:
        return self._path

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def call(self, func: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``func`` against the connection while holding the lock."""

        with self._lock:
            try:
                return func(self._conn)
            except sqlite3.Error as exc:
                raise StoreFailure(f"SQLite operation failed on {self._path}: {exc}") from exc

    async def run(self, func: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self.call, func)

    # ------------------------------------------------------------------
    # schema management
    def _log_schema_change(self, message: str, *args: Any) -> None:
        get_category_logger("schema").info(message, *args)

    def _get_schema_version(self) -> int:
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
            )
            row = self._conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._conn.execute("INSERT INTO schema_version (version) VALUES (0)")
                return 0
            return int(row[0])

    def _set_schema_version(self, version: int) -> None:
        self._conn.execute("UPDATE schema_version SET version = ?", (version,))

    def _apply_migrations(self) -> None:
        with self._lock:
            current = self._get_schema_version()
            target = MIGRATIONS[-1].version if MIGRATIONS else 0
            if current < target:
                for migration in MIGRATIONS:
                    if migration.version > current:
                        self._log_schema_change("Applying migration %s", migration.version)
                        with self._conn:
                            migration.upgrade(self._conn)
                            self._set_schema_version(migration.version)
                        current = migration.version
                self._log_schema_change("Schema migrated to version %s", target)
            elif current > target:
                for migration in reversed(MIGRATIONS):
                    if migration.version <= current:
                        self._log_schema_change("Reverting migration %s", migration.version)
                        with self._conn:
                            migration.downgrade(self._conn)
                            self._set_schema_version(migration.version - 1)
                        current = migration.version - 1
                self._log_schema_change("Schema downgraded to version %s", target)

    def schema_version(self) -> int:
        with self._lock:
            return self._get_schema_version()


class SQLiteAppointmentStore(AppointmentStore):
    """Appointment and user tables of the service database."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    async def fetch_scheduled(self, date_from: date, date_to: date) -> List[Appointment]:
        def _query(conn: sqlite3.Connection) -> List[sqlite3.Row]:
            # Compare on the date prefix so "YYYY-MM-DDT..." values are not
            # excluded by the upper bound.
            return conn.execute(
                """
                SELECT * FROM appointments
                WHERE status = ? AND substr(trim(date), 1, 10) BETWEEN ? AND ?
                ORDER BY date, time
                """,
                (AppointmentStatus.SCHEDULED.value, date_from.isoformat(), date_to.isoformat()),
            ).fetchall()

        rows = await self._db.run(_query)
        return [Appointment.from_dict(dict(row)) for row in rows]

    async def get_user(self, user_id: str) -> Optional[User]:
        row = await self._db.run(
            lambda conn: conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        )
        if row is None:
            return None
        return User(id=str(row["id"]), recipient_token=row["recipient_token"])

    def upsert_appointment(self, appointment: Appointment) -> Appointment:
        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO appointments (id, date, time, user_id, status, plate_number, owner_name)
                    VALUES (:id, :date, :time, :user_id, :status, :plate_number, :owner_name)
                    ON CONFLICT(id) DO UPDATE SET
                        date = excluded.date,
                        time = excluded.time,
                        user_id = excluded.user_id,
                        status = excluded.status,
                        plate_number = excluded.plate_number,
                        owner_name = excluded.owner_name
                    """,
                    appointment.to_dict(),
                )

        self._db.call(_write)
        return appointment

    def upsert_user(self, user: User) -> User:
        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO users (id, recipient_token) VALUES (?, ?)
                    ON CONFLICT(id) DO UPDATE SET recipient_token = excluded.recipient_token
                    """,
                    (user.id, user.recipient_token),
                )

        self._db.call(_write)
        return user


class SQLiteDedupLedger(DedupLedger):
    """``reminders`` table keyed by (appointment_id, reminder_type)."""

    def __init__(self, database: SQLiteDatabase, *, batch_size: int = 500) -> None:
        self._db = database
        self._batch_size = max(1, batch_size)

    async def was_sent(self, appointment_id: str, kind: ReminderKind) -> bool:
        row = await self._db.run(
            lambda conn: conn.execute(
                "SELECT 1 FROM reminders WHERE appointment_id = ? AND reminder_type = ? LIMIT 1",
                (appointment_id, ReminderKind(kind).value),
            ).fetchone()
        )
        return row is not None

    async def record(self, appointment_id: str, kind: ReminderKind, sent_at: datetime) -> None:
        params = (appointment_id, ReminderKind(kind).value, format_instant(sent_at))

        def _write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO reminders (appointment_id, reminder_type, sent_at) VALUES (?, ?, ?)
                    ON CONFLICT(appointment_id, reminder_type) DO UPDATE SET sent_at = excluded.sent_at
                    """,
                    params,
                )

        await self._db.run(_write)

    async def purge_older_than(self, threshold: datetime) -> int:
        cutoff = format_instant(threshold)
        limit = self._batch_size

        def _delete_batch(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute(
                    """
                    DELETE FROM reminders WHERE rowid IN (
                        SELECT rowid FROM reminders WHERE sent_at < ? LIMIT ?
                    )
                    """,
                    (cutoff, limit),
                )
                return cursor.rowcount

        deleted = 0
        while True:
            try:
                batch = await self._db.run(_delete_batch)
            except StoreFailure as exc:
                raise StoreFailure(
                    f"Purge stopped after deleting {deleted} markers older than {cutoff}: {exc}"
                ) from exc
            deleted += batch
            _logger.debug("Purged batch of %s dedup markers (total %s)", batch, deleted)
            if batch < limit:
                return deleted

    async def list_markers(self) -> List[DedupMarker]:
        rows = await self._db.run(
            lambda conn: conn.execute(
                "SELECT appointment_id, reminder_type, sent_at FROM reminders ORDER BY sent_at"
            ).fetchall()
        )
        return [
            DedupMarker(
                key=DedupKey(str(row["appointment_id"]), ReminderKind(row["reminder_type"])),
                sent_at=parse_instant(row["sent_at"]),
            )
            for row in rows
        ]


__all__ = [
    "SQLiteAppointmentStore",
    "SQLiteDatabase",
    "SQLiteDedupLedger",
    "format_instant",
    "parse_instant",
]
