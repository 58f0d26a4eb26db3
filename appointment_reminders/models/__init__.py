"""Domain models shared by the engine, storage and transports."""
from .appointment import Appointment, AppointmentStatus, User
from .reminder import (
    DEFAULT_WINDOWS,
    DedupKey,
    DedupMarker,
    ReminderKind,
    ReminderWindow,
    ScanResult,
    SweepResult,
)

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "DEFAULT_WINDOWS",
    "DedupKey",
    "DedupMarker",
    "ReminderKind",
    "ReminderWindow",
    "ScanResult",
    "SweepResult",
    "User",
]
