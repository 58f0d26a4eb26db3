"""Application bootstrap helpers."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .config import Config, load_config
from .jobs.scheduler import ReminderScheduler
from .models import ScanResult, SweepResult
from .services.diagnostics import TestReminderResult, send_test_reminder
from .services.notifications import NotificationSender, create_sender
from .services.reminders import ReminderEngine
from .services.retention import RetentionSweeper
from .storage import Storage, create_storage
from .utils.datetime import now_utc
from .utils.metrics import MetricsCollector

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Runtime:
    config: Config
    storage: Storage
    sender: NotificationSender
    metrics: MetricsCollector
    engine: ReminderEngine
    sweeper: RetentionSweeper


@asynccontextmanager
async def build_runtime(
    config: Optional[Config] = None,
    *,
    storage: Optional[Storage] = None,
    sender: Optional[NotificationSender] = None,
) -> AsyncIterator[Runtime]:
    config = config or load_config()
    storage = storage or create_storage(config)
    sender = sender or create_sender(config.onesignal)
    metrics = MetricsCollector()
    engine = ReminderEngine(
        store=storage.appointments,
        ledger=storage.ledger,
        sender=sender,
        config=config.reminder,
        timezone=config.timezone,
        locale=config.locale,
        metrics=metrics,
    )
    sweeper = RetentionSweeper(
        storage.ledger,
        retention_days=config.retention.retention_days,
        metrics=metrics,
    )
    try:
        yield Runtime(
            config=config,
            storage=storage,
            sender=sender,
            metrics=metrics,
            engine=engine,
            sweeper=sweeper,
        )
    finally:
        await sender.close()
        storage.close()


async def run_service(config: Optional[Config] = None) -> None:
    async with build_runtime(config) as runtime:
        scheduler = ReminderScheduler(
            config=runtime.config,
            engine=runtime.engine,
            sweeper=runtime.sweeper,
            metrics=runtime.metrics,
        )
        await scheduler.start()
        _logger.info("Reminder service running with database at %s", runtime.config.storage_path)
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.shutdown()
            await runtime.metrics.log_summary()
            _logger.info("Reminder service stopped")


async def run_scan_once(config: Optional[Config] = None) -> ScanResult:
    async with build_runtime(config) as runtime:
        return await runtime.engine.run_scan(now_utc())


async def run_sweep_once(config: Optional[Config] = None) -> SweepResult:
    async with build_runtime(config) as runtime:
        return await runtime.sweeper.run_sweep(now_utc())


async def run_test_reminder(user_id: Optional[str], config: Optional[Config] = None) -> TestReminderResult:
    async with build_runtime(config) as runtime:
        return await send_test_reminder(
            user_id,
            store=runtime.storage.appointments,
            sender=runtime.sender,
            locale=runtime.config.locale,
        )


__all__ = [
    "Runtime",
    "build_runtime",
    "run_scan_once",
    "run_service",
    "run_sweep_once",
    "run_test_reminder",
]
