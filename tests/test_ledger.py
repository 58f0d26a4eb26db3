import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from appointment_reminders.models import ReminderKind
from appointment_reminders.storage import MemoryDedupLedger, SQLiteDatabase, SQLiteDedupLedger

NOW = datetime(2024, 6, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, tmp_path):
    if request.param == "memory":
        yield MemoryDedupLedger()
        return
    database = SQLiteDatabase(tmp_path / "ledger.db")
    try:
        yield SQLiteDedupLedger(database)
    finally:
        database.close()


def test_record_then_was_sent(ledger):
    async def scenario():
        assert await ledger.was_sent("a1", ReminderKind.DAY_BEFORE) is False
        await ledger.record("a1", ReminderKind.DAY_BEFORE, NOW)
        assert await ledger.was_sent("a1", ReminderKind.DAY_BEFORE) is True
        assert await ledger.was_sent("a1", ReminderKind.HOUR_BEFORE) is False
        assert await ledger.was_sent("a2", ReminderKind.DAY_BEFORE) is False

    asyncio.run(scenario())


def test_keys_do_not_collide_on_separators(ledger):
    async def scenario():
        await ledger.record("a_24h", ReminderKind.HOUR_BEFORE, NOW)
        assert await ledger.was_sent("a", ReminderKind.DAY_BEFORE) is False
        assert await ledger.was_sent("a_24h", ReminderKind.DAY_BEFORE) is False
        assert await ledger.was_sent("a_24h", ReminderKind.HOUR_BEFORE) is True

    asyncio.run(scenario())


def test_record_overwrites_existing_marker(ledger):
    async def scenario():
        await ledger.record("a1", ReminderKind.HOUR_BEFORE, NOW - timedelta(hours=1))
        await ledger.record("a1", ReminderKind.HOUR_BEFORE, NOW)
        markers = await ledger.list_markers()
        assert len(markers) == 1
        assert markers[0].sent_at == NOW
        assert markers[0].key == ("a1", ReminderKind.HOUR_BEFORE)

    asyncio.run(scenario())


def test_purge_older_than_keeps_recent_markers(ledger):
    async def scenario():
        await ledger.record("old", ReminderKind.DAY_BEFORE, NOW - timedelta(days=31))
        await ledger.record("recent", ReminderKind.DAY_BEFORE, NOW - timedelta(days=29))
        deleted = await ledger.purge_older_than(NOW - timedelta(days=30))
        assert deleted == 1
        assert await ledger.was_sent("old", ReminderKind.DAY_BEFORE) is False
        assert await ledger.was_sent("recent", ReminderKind.DAY_BEFORE) is True

    asyncio.run(scenario())


def test_purge_is_strict_at_threshold(ledger):
    async def scenario():
        threshold = NOW - timedelta(days=30)
        await ledger.record("edge", ReminderKind.DAY_BEFORE, threshold)
        assert await ledger.purge_older_than(threshold) == 0
        assert await ledger.was_sent("edge", ReminderKind.DAY_BEFORE) is True

    asyncio.run(scenario())


def test_record_requires_aware_timestamp(ledger):
    async def scenario():
        with pytest.raises(ValueError):
            await ledger.record("a1", ReminderKind.DAY_BEFORE, datetime(2024, 6, 14, 9, 0))

    asyncio.run(scenario())


def test_sqlite_purge_runs_in_batches(tmp_path):
    async def scenario():
        with SQLiteDatabase(tmp_path / "ledger.db") as database:
            ledger = SQLiteDedupLedger(database, batch_size=2)
            for index in range(5):
                await ledger.record(f"old-{index}", ReminderKind.DAY_BEFORE, NOW - timedelta(days=40 + index))
            await ledger.record("fresh", ReminderKind.HOUR_BEFORE, NOW)
            deleted = await ledger.purge_older_than(NOW - timedelta(days=30))
            assert deleted == 5
            markers = await ledger.list_markers()
            assert [marker.key.appointment_id for marker in markers] == ["fresh"]

    asyncio.run(scenario())


def test_sqlite_markers_survive_reopen(tmp_path):
    path = tmp_path / "ledger.db"

    async def write():
        with SQLiteDatabase(path) as database:
            await SQLiteDedupLedger(database).record("a1", ReminderKind.DAY_BEFORE, NOW)

    async def read():
        with SQLiteDatabase(path) as database:
            return await SQLiteDedupLedger(database).was_sent("a1", ReminderKind.DAY_BEFORE)

    asyncio.run(write())
    assert asyncio.run(read()) is True
