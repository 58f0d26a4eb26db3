"""In-memory storage adapters.

Used for local runs (``STORAGE_BACKEND=memory``) and unit tests. The
adapters implement the same async surface as the SQLite ones so the engine
cannot tell them apart.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from ..models import Appointment, DedupKey, DedupMarker, ReminderKind, User
from ..utils.datetime import UTC, ensure_aware
from .base import AppointmentStore, DedupLedger


def _date_prefix(value: str) -> str:
    return value.strip()[:10]


class MemoryAppointmentStore(AppointmentStore):
    """Store appointments and users in dictionaries."""

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        users: Iterable[User] = (),
    ) -> None:
        self._appointments: Dict[str, Appointment] = {a.id: a for a in appointments}
        self._users: Dict[str, User] = {u.id: u for u in users}

    # CRUD helpers -----------------------------------------------------
    def upsert_appointment(self, appointment: Appointment) -> Appointment:
        self._appointments[appointment.id] = appointment
        return appointment

    def upsert_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def delete_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self._appointments.pop(appointment_id, None)

    # AppointmentStore -------------------------------------------------
    async def fetch_scheduled(self, date_from: date, date_to: date) -> List[Appointment]:
        low, high = date_from.isoformat(), date_to.isoformat()
        return [
            appointment
            for appointment in self._appointments.values()
            if appointment.is_scheduled and low <= _date_prefix(appointment.date) <= high
        ]

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)


class MemoryDedupLedger(DedupLedger):
    """Keep dedup markers in a dictionary keyed by :class:`DedupKey`."""

    def __init__(self) -> None:
        self._markers: Dict[DedupKey, datetime] = {}

    async def was_sent(self, appointment_id: str, kind: ReminderKind) -> bool:
        return DedupKey(appointment_id, ReminderKind(kind)) in self._markers

    async def record(self, appointment_id: str, kind: ReminderKind, sent_at: datetime) -> None:
        self._markers[DedupKey(appointment_id, ReminderKind(kind))] = ensure_aware(sent_at, "sent_at").astimezone(UTC)

    async def purge_older_than(self, threshold: datetime) -> int:
        ensure_aware(threshold, "threshold")
        stale = [key for key, sent_at in self._markers.items() if sent_at < threshold]
        for key in stale:
            self._markers.pop(key, None)
        return len(stale)

    async def list_markers(self) -> List[DedupMarker]:
        return [DedupMarker(key=key, sent_at=sent_at) for key, sent_at in self._markers.items()]


__all__ = ["MemoryAppointmentStore", "MemoryDedupLedger"]
