"""Exception hierarchy for the reminder engine."""
from __future__ import annotations

from typing import Literal


class ReminderError(Exception):
    """Base class for every error raised by the reminder engine."""


class ParseFailure(ReminderError, ValueError):
    """Raised when an appointment's date and time do not form a valid instant."""

    def __init__(self, date_value: object, time_value: object, reason: str) -> None:
        super().__init__(f"cannot resolve {date_value!r} {time_value!r}: {reason}")
        self.date_value = date_value
        self.time_value = time_value
        self.reason = reason


class LookupMiss(ReminderError):
    """Raised when an appointment's owner or recipient token cannot be resolved."""

    def __init__(self, appointment_id: str, reason: str) -> None:
        super().__init__(f"appointment {appointment_id}: {reason}")
        self.appointment_id = appointment_id
        self.reason = reason


class DispatchFailure(ReminderError):
    """Raised when the notification transport fails or rejects a message."""

    def __init__(self, message: str, *, errors: object = None) -> None:
        super().__init__(message)
        self.errors = errors


class StoreFailure(ReminderError):
    """Raised when the appointment store or the dedup ledger cannot be accessed."""


AuthReason = Literal["unauthenticated", "not-found"]


class AuthenticationFailure(ReminderError):
    """Raised by the manual test path for unauthenticated or unknown callers."""

    def __init__(self, reason: AuthReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


__all__ = [
    "AuthReason",
    "AuthenticationFailure",
    "DispatchFailure",
    "LookupMiss",
    "ParseFailure",
    "ReminderError",
    "StoreFailure",
]
