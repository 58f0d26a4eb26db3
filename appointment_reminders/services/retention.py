from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..logging_config import get_category_logger
from ..models import SweepResult
from ..storage.base import DedupLedger
from ..utils.datetime import ensure_aware
from ..utils.metrics import MetricsCollector

logger = logging.getLogger("appointment_reminders.services.retention")


class RetentionSweeper:
    """Delete dedup markers older than the retention period."""

    def __init__(
        self,
        ledger: DedupLedger,
        *,
        retention_days: int = 30,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if retention_days < 1:
            raise ValueError("retention_days must be >= 1")
        self._ledger = ledger
        self._retention = timedelta(days=retention_days)
        self._metrics = metrics or MetricsCollector()
        self._cleanup_log = get_category_logger("cleanup")

    async def run_sweep(self, now: datetime) -> SweepResult:
        # StoreFailure propagates; markers older than the next threshold are
        # picked up by the following run.
        threshold = ensure_aware(now) - self._retention
        deleted = await self._ledger.purge_older_than(threshold)
        await self._metrics.incr(sweeps=1, purged=deleted)
        self._cleanup_log.info("Deleted %s reminder markers older than %s", deleted, threshold.isoformat())
        return SweepResult(deleted_count=deleted, threshold=threshold)


__all__ = ["RetentionSweeper"]
