import asyncio

import pytest

from appointment_reminders.errors import AuthenticationFailure, DispatchFailure
from appointment_reminders.models import User
from appointment_reminders.services.diagnostics import send_test_reminder
from appointment_reminders.services.notifications import DeliveryResult, NotificationSender
from appointment_reminders.storage import MemoryAppointmentStore


class RecordingSender(NotificationSender):
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    async def send(self, recipient_tokens, title, body, data):
        self.calls.append((list(recipient_tokens), title, body, dict(data)))
        if self.fail:
            raise DispatchFailure("rejected")
        return DeliveryResult(notification_id="n-1", recipients=tuple(recipient_tokens))


def _store():
    return MemoryAppointmentStore(
        users=[User(id="u1", recipient_token="tok-1"), User(id="u2", recipient_token=None)]
    )


@pytest.mark.parametrize("caller_id", [None, "", "   "])
def test_unauthenticated_caller_is_rejected(caller_id):
    async def scenario():
        sender = RecordingSender()
        with pytest.raises(AuthenticationFailure) as excinfo:
            await send_test_reminder(caller_id, store=_store(), sender=sender)
        assert excinfo.value.reason == "unauthenticated"
        assert sender.calls == []

    asyncio.run(scenario())


@pytest.mark.parametrize("caller_id", ["ghost", "u2"])
def test_caller_without_recipient_is_not_found(caller_id):
    async def scenario():
        with pytest.raises(AuthenticationFailure) as excinfo:
            await send_test_reminder(caller_id, store=_store(), sender=RecordingSender())
        assert excinfo.value.reason == "not-found"

    asyncio.run(scenario())


def test_test_reminder_is_sent_to_caller():
    async def scenario():
        sender = RecordingSender()
        result = await send_test_reminder("u1", store=_store(), sender=sender, locale="en")
        assert result.success is True
        assert result.message == "Test notification sent!"
        tokens, title, body, data = sender.calls[0]
        assert tokens == ["tok-1"]
        assert title == "🧪 Test!"
        assert data == {"type": "test"}

    asyncio.run(scenario())


def test_dispatch_failure_reaches_caller():
    async def scenario():
        with pytest.raises(DispatchFailure):
            await send_test_reminder("u1", store=_store(), sender=RecordingSender(fail=True))

    asyncio.run(scenario())


def test_rejected_test_notification_is_a_failure():
    class RejectingSender(RecordingSender):
        async def send(self, recipient_tokens, title, body, data):
            await super().send(recipient_tokens, title, body, data)
            return DeliveryResult(notification_id=None, errors=["invalid_player_ids"])

    async def scenario():
        with pytest.raises(DispatchFailure) as excinfo:
            await send_test_reminder("u1", store=_store(), sender=RejectingSender())
        assert excinfo.value.errors == ["invalid_player_ids"]

    asyncio.run(scenario())
