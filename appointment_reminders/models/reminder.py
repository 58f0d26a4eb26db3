"""Reminder kinds, trigger windows and dedup markers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, NamedTuple


class ReminderKind(str, Enum):
    DAY_BEFORE = "24h"
    HOUR_BEFORE = "1h"


@dataclass(slots=True, frozen=True)
class ReminderWindow:
    """Inclusive range of hours-until-appointment in which a kind is due.

    The range is wider than a single point because scans run hourly and an
    appointment's exact 24h or 1h mark usually falls between two runs.
    """

    start_hours: float
    end_hours: float

    def contains(self, hours: float) -> bool:
        return self.start_hours <= hours <= self.end_hours

    def __str__(self) -> str:
        return f"[{self.start_hours:g}, {self.end_hours:g}]h"


DEFAULT_WINDOWS: Dict[ReminderKind, ReminderWindow] = {
    ReminderKind.DAY_BEFORE: ReminderWindow(23.0, 25.0),
    ReminderKind.HOUR_BEFORE: ReminderWindow(0.5, 1.5),
}


class DedupKey(NamedTuple):
    appointment_id: str
    kind: ReminderKind


@dataclass(slots=True, frozen=True)
class DedupMarker:
    key: DedupKey
    sent_at: datetime


@dataclass(slots=True)
class ScanResult:
    appointments_scanned: int = 0
    reminders_sent: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(slots=True, frozen=True)
class SweepResult:
    deleted_count: int
    threshold: datetime
