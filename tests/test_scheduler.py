import asyncio
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger

from appointment_reminders.config import Config, OneSignalConfig, ReminderConfig, RetentionConfig
from appointment_reminders.jobs.scheduler import SCAN_JOB_ID, SWEEP_JOB_ID, ReminderScheduler
from appointment_reminders.models import Appointment, ReminderKind, User
from appointment_reminders.services.notifications import ConsoleNotificationSender
from appointment_reminders.services.reminders import ReminderEngine
from appointment_reminders.services.retention import RetentionSweeper
from appointment_reminders.storage import MemoryAppointmentStore, MemoryDedupLedger
from appointment_reminders.utils.metrics import MetricsCollector

NOW = datetime(2024, 6, 14, 9, 0, tzinfo=timezone.utc)


def _config():
    return Config(
        reminder=ReminderConfig(scan_minute=5),
        retention=RetentionConfig(sweep_hour=3, sweep_minute=15),
        onesignal=OneSignalConfig(),
        storage_path=Path("unused.db"),
        timezone=ZoneInfo("Asia/Jerusalem"),
        storage_backend="memory",
    )


def _build(ledger=None):
    config = _config()
    metrics = MetricsCollector()
    ledger = ledger or MemoryDedupLedger()
    store = MemoryAppointmentStore(
        [Appointment(id="a1", date="2024-06-15", time="12:00", user_id="u1")],
        [User(id="u1", recipient_token="tok-1")],
    )
    engine = ReminderEngine(
        store=store,
        ledger=ledger,
        sender=ConsoleNotificationSender(),
        config=config.reminder,
        timezone=config.timezone,
        metrics=metrics,
    )
    sweeper = RetentionSweeper(ledger, metrics=metrics)
    return ReminderScheduler(
        config=config, engine=engine, sweeper=sweeper, metrics=metrics, clock=lambda: NOW
    )


def _fields(trigger):
    return {field.name: str(field) for field in trigger.fields}


def test_jobs_use_configured_cron_schedule():
    async def scenario():
        scheduler = _build()
        scheduler.register_jobs()

        scan = scheduler.scheduler.get_job(SCAN_JOB_ID)
        sweep = scheduler.scheduler.get_job(SWEEP_JOB_ID)
        assert isinstance(scan.trigger, CronTrigger)
        assert _fields(scan.trigger)["minute"] == "5"
        assert _fields(scan.trigger)["hour"] == "*"
        assert _fields(sweep.trigger)["hour"] == "3"
        assert _fields(sweep.trigger)["minute"] == "15"
        assert str(scan.trigger.timezone) == "Asia/Jerusalem"
        assert scan.max_instances == 1

    asyncio.run(scenario())


def test_scan_job_runs_engine_with_clock():
    async def scenario():
        ledger = MemoryDedupLedger()
        scheduler = _build(ledger)
        scheduler.register_jobs()
        await scheduler.scheduler.get_job(SCAN_JOB_ID).func()
        assert await ledger.was_sent("a1", ReminderKind.DAY_BEFORE) is True

    asyncio.run(scenario())


def test_start_and_shutdown():
    async def scenario():
        scheduler = _build()
        await scheduler.start()
        assert scheduler.scheduler.running
        await scheduler.shutdown()

    asyncio.run(scenario())
