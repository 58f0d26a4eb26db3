"""Manual test notification for a single user."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import AuthenticationFailure, DispatchFailure
from ..locales import get_text
from ..storage.base import AppointmentStore
from .notifications import NotificationSender

logger = logging.getLogger("appointment_reminders.services.diagnostics")


@dataclass(slots=True, frozen=True)
class TestReminderResult:
    __test__ = False

    success: bool
    message: str


async def send_test_reminder(
    caller_id: Optional[str],
    *,
    store: AppointmentStore,
    sender: NotificationSender,
    locale: str = "he",
) -> TestReminderResult:
    """Push a fixed test message to ``caller_id``'s own device.

    The dedup ledger is not consulted. Sender failures propagate as
    :class:`~appointment_reminders.errors.DispatchFailure`.
    """

    if not caller_id or not caller_id.strip():
        raise AuthenticationFailure("unauthenticated", "User must be logged in")

    user = await store.get_user(caller_id)
    if user is None or not user.has_recipient:
        raise AuthenticationFailure("not-found", "No recipient token registered for this user")

    delivery = await sender.send(
        [user.recipient_token],
        get_text(locale, "test_title"),
        get_text(locale, "test_body"),
        {"type": "test"},
    )
    if not delivery.success:
        raise DispatchFailure(
            f"Test notification rejected: {delivery.errors or 'no notification id'}",
            errors=delivery.errors,
        )
    logger.info("Test notification sent to user %s", user.id)
    return TestReminderResult(success=True, message=get_text(locale, "test_sent"))


__all__ = ["TestReminderResult", "send_test_reminder"]
