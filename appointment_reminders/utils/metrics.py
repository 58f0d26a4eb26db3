from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque


@dataclass
class Metrics:
    scans: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    sweeps: int = 0
    purged: int = 0


class MetricsCollector:
    """Collects run counters and dispatch latency for observability."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._metrics = Metrics()
        self._lock = asyncio.Lock()
        self._logger = logger or logging.getLogger("appointment_reminders.metrics")
        self._latencies: Deque[tuple[float, float]] = deque()

    async def incr(self, **kwargs: int) -> None:
        async with self._lock:
            for key, value in kwargs.items():
                if hasattr(self._metrics, key):
                    setattr(self._metrics, key, getattr(self._metrics, key) + value)

    async def record_latency(self, latency: float) -> None:
        async with self._lock:
            now = time.time()
            self._latencies.append((now, latency))
            while self._latencies and self._latencies[0][0] < now - 86400:
                self._latencies.popleft()

    async def snapshot(self) -> Metrics:
        async with self._lock:
            return Metrics(**self._metrics.__dict__)

    async def percentiles(self, window_seconds: int = 86400) -> tuple[float, float]:
        async with self._lock:
            now = time.time()
            values = [lat for ts, lat in self._latencies if ts >= now - window_seconds]
        if not values:
            return 0.0, 0.0
        values.sort()
        p50 = values[len(values) // 2]
        idx95 = int(len(values) * 0.95) - 1
        idx95 = max(0, min(idx95, len(values) - 1))
        return p50, values[idx95]

    async def log_summary(self) -> None:
        summary = await self.snapshot()
        p50, p95 = await self.percentiles()
        self._logger.info(
            "metrics: scans=%s sent=%s skipped=%s failed=%s sweeps=%s purged=%s dispatch_p50=%.3f dispatch_p95=%.3f",
            summary.scans,
            summary.sent,
            summary.skipped,
            summary.failed,
            summary.sweeps,
            summary.purged,
            p50,
            p95,
        )
