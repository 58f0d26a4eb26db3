from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import Config
from ..services.reminders import ReminderEngine
from ..services.retention import RetentionSweeper
from ..utils.datetime import now_utc
from ..utils.metrics import MetricsCollector

logger = logging.getLogger("appointment_reminders.jobs.scheduler")

SCAN_JOB_ID = "reminder-scan"
SWEEP_JOB_ID = "reminder-sweep"
METRICS_JOB_ID = "metrics-summary"


class ReminderScheduler:
    """Run the hourly reminder scan and the daily marker sweep."""

    def __init__(
        self,
        *,
        config: Config,
        engine: ReminderEngine,
        sweeper: RetentionSweeper,
        metrics: MetricsCollector,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._config = config
        self._engine = engine
        self._sweeper = sweeper
        self._metrics = metrics
        self._clock = clock
        self._scheduler = AsyncIOScheduler(timezone=config.timezone)
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._registered = False

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    def register_jobs(self) -> None:
        if self._registered:
            return
        self._scheduler.add_job(
            self._scan_job,
            "cron",
            minute=self._config.reminder.scan_minute,
            id=SCAN_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._sweep_job,
            "cron",
            hour=self._config.retention.sweep_hour,
            minute=self._config.retention.sweep_minute,
            id=SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._metrics.log_summary,
            "interval",
            hours=1,
            id=METRICS_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._registered = True

    async def start(self) -> None:
        self.register_jobs()
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info(
                "scheduler started (scan at minute %s, sweep at %02d:%02d %s)",
                self._config.reminder.scan_minute,
                self._config.retention.sweep_hour,
                self._config.retention.sweep_minute,
                self._config.timezone.key,
            )

    async def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("scheduler stopped")

    async def _scan_job(self) -> None:
        await self._engine.run_scan(self._clock())

    async def _sweep_job(self) -> None:
        await self._sweeper.run_sweep(self._clock())

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        logger.error("job %s failed: %r", event.job_id, event.exception, exc_info=event.exception)


__all__ = ["METRICS_JOB_ID", "ReminderScheduler", "SCAN_JOB_ID", "SWEEP_JOB_ID"]
