"""Reminder scan, retention sweep, test notification and push transports."""
from .diagnostics import TestReminderResult, send_test_reminder
from .notifications import (
    ConsoleNotificationSender,
    DeliveryResult,
    NotificationSender,
    OneSignalSender,
    create_sender,
)
from .reminders import ReminderEngine, build_payload
from .retention import RetentionSweeper

__all__ = [
    "ConsoleNotificationSender",
    "DeliveryResult",
    "NotificationSender",
    "OneSignalSender",
    "ReminderEngine",
    "RetentionSweeper",
    "TestReminderResult",
    "build_payload",
    "create_sender",
    "send_test_reminder",
]
