"""Interfaces the reminder engine needs from its persistence collaborators."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from ..models import Appointment, ReminderKind, User


class AppointmentStore:
    """Read access to appointments and users owned by another system."""

    async def fetch_scheduled(self, date_from: date, date_to: date) -> List[Appointment]:  # pragma: no cover - interface method
        """Return ``scheduled`` appointments whose date lies in ``[date_from, date_to]``."""

        raise NotImplementedError

    async def get_user(self, user_id: str) -> Optional[User]:  # pragma: no cover - interface method
        raise NotImplementedError


class DedupLedger:
    """Markers recording which (appointment, reminder kind) pairs were sent.

    Per-key operations are independent; no global lock is taken.
    """

    async def was_sent(self, appointment_id: str, kind: ReminderKind) -> bool:  # pragma: no cover - interface method
        raise NotImplementedError

    async def record(self, appointment_id: str, kind: ReminderKind, sent_at: datetime) -> None:  # pragma: no cover - interface method
        """Upsert the marker; writing an existing key overwrites ``sent_at``."""

        raise NotImplementedError

    async def purge_older_than(self, threshold: datetime) -> int:  # pragma: no cover - interface method
        """Delete every marker whose ``sent_at`` precedes ``threshold``."""

        raise NotImplementedError
