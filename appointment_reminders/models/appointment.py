"""Read-only snapshots of appointments and their owners."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class Appointment:
    """An appointment as stored by the appointment store.

    ``date`` and ``time`` are kept exactly as the store returns them; they are
    resolved to an absolute instant only when a scan needs it.
    """

    id: str
    date: str
    time: Optional[str]
    user_id: Optional[str]
    status: str = AppointmentStatus.SCHEDULED.value
    plate_number: Optional[str] = None
    owner_name: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return self.status == AppointmentStatus.SCHEDULED.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "user_id": self.user_id,
            "status": self.status,
            "plate_number": self.plate_number,
            "owner_name": self.owner_name,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Appointment":
        status = payload.get("status") or AppointmentStatus.SCHEDULED.value
        if isinstance(status, AppointmentStatus):
            status = status.value
        return cls(
            id=str(payload["id"]),
            date=str(payload.get("date") or ""),
            time=payload.get("time"),
            user_id=payload.get("user_id"),
            status=str(status),
            plate_number=payload.get("plate_number"),
            owner_name=payload.get("owner_name"),
        )


@dataclass(slots=True, frozen=True)
class User:
    """Owner of an appointment and the push recipient for its reminders."""

    id: str
    recipient_token: Optional[str] = None

    @property
    def has_recipient(self) -> bool:
        return bool(self.recipient_token and self.recipient_token.strip())
