"""Hourly scan that sends 24h and 1h appointment reminders exactly once."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Dict
from zoneinfo import ZoneInfo

from ..config import ReminderConfig
from ..errors import DispatchFailure, LookupMiss, ParseFailure
from ..locales import get_text
from ..logging_config import get_category_logger
from ..models import Appointment, ReminderKind, ScanResult, User
from ..storage.base import AppointmentStore, DedupLedger
from ..utils.datetime import ensure_aware, hours_until, local_today, resolve_instant, to_local
from ..utils.metrics import MetricsCollector
from ..utils.windows import classify, ordered
from .notifications import NotificationSender

logger = logging.getLogger("appointment_reminders.services.reminders")

NOTIFICATION_TYPE = "appointment_reminder"

_TEXT_KEYS: Dict[ReminderKind, tuple[str, str]] = {
    ReminderKind.DAY_BEFORE: ("reminder_24h_title", "reminder_24h_body"),
    ReminderKind.HOUR_BEFORE: ("reminder_1h_title", "reminder_1h_body"),
}


def build_payload(appointment_id: str, kind: ReminderKind) -> Dict[str, str]:
    return {
        "type": NOTIFICATION_TYPE,
        "appointmentId": appointment_id,
        "reminderType": ReminderKind(kind).value,
    }


class ReminderEngine:
    """Decide which appointments are due for a reminder and dispatch them.

    Each (appointment, kind) pair is sent at most once: the ledger is checked
    before dispatch and a marker is written only after the sender reports
    success. A failed dispatch leaves no marker, so the next scan retries it
    while the window is still open.
    """

    def __init__(
        self,
        *,
        store: AppointmentStore,
        ledger: DedupLedger,
        sender: NotificationSender,
        config: ReminderConfig,
        timezone: ZoneInfo,
        locale: str = "he",
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._sender = sender
        self._config = config
        self._timezone = timezone
        self._locale = locale
        self._metrics = metrics or MetricsCollector()
        self._sent_log = get_category_logger("reminder_sent")
        self._skip_log = get_category_logger("reminder_skipped")
        self._failure_log = get_category_logger("dispatch_failed")
        self._error_log = get_category_logger("error")

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    async def run_scan(self, now: datetime) -> ScanResult:
        """Run one scan pass at ``now`` and return its counters.

        A failure to fetch appointments propagates; anything that goes wrong
        for a single appointment is logged and counted instead.
        """

        ensure_aware(now)
        today = local_today(now, self._timezone)
        horizon = today + timedelta(days=self._config.lookahead_days)
        appointments = await self._store.fetch_scheduled(today, horizon)

        result = ScanResult(appointments_scanned=len(appointments))
        semaphore = asyncio.Semaphore(max(1, self._config.scan_concurrency))

        async def _guarded(appointment: Appointment) -> None:
            async with semaphore:
                await self._process_safely(appointment, now, result)

        await asyncio.gather(*(_guarded(appointment) for appointment in appointments))

        await self._metrics.incr(
            scans=1,
            sent=result.reminders_sent,
            skipped=result.skipped,
            failed=result.failed,
        )
        logger.info(
            "Scan at %s (%s..%s): scanned=%s sent=%s skipped=%s failed=%s",
            now.isoformat(),
            today.isoformat(),
            horizon.isoformat(),
            result.appointments_scanned,
            result.reminders_sent,
            result.skipped,
            result.failed,
        )
        return result

    async def _process_safely(self, appointment: Appointment, now: datetime, result: ScanResult) -> None:
        try:
            await self._process(appointment, now, result)
        except Exception:  # noqa: BLE001
            result.failed += 1
            self._error_log.exception("Failed to process appointment %s", appointment.id)

    async def _process(self, appointment: Appointment, now: datetime, result: ScanResult) -> None:
        if not appointment.is_scheduled:
            result.skipped += 1
            self._skip_log.debug("Appointment %s skipped: status %s", appointment.id, appointment.status)
            return

        try:
            instant = resolve_instant(appointment.date, appointment.time, self._timezone)
        except ParseFailure as exc:
            result.skipped += 1
            self._skip_log.warning("Appointment %s skipped: %s", appointment.id, exc)
            return

        hours = hours_until(instant, now)
        if hours < 0:
            result.skipped += 1
            self._skip_log.debug("Appointment %s skipped: already started (%.2fh)", appointment.id, hours)
            return

        kinds = ordered(classify(hours, self._config.windows))
        if not kinds:
            result.skipped += 1
            self._skip_log.debug("Appointment %s not in any window (%.2fh)", appointment.id, hours)
            return

        try:
            user = await self._resolve_recipient(appointment)
        except LookupMiss as exc:
            result.skipped += 1
            self._skip_log.warning("Appointment %s skipped: %s", appointment.id, exc.reason)
            return

        for kind in kinds:
            if await self._ledger.was_sent(appointment.id, kind):
                result.skipped += 1
                self._skip_log.debug("Reminder %s for appointment %s already sent", kind.value, appointment.id)
                continue
            title, body = self._render(appointment, kind, instant)
            started = time.perf_counter()
            try:
                delivery = await self._sender.send(
                    [user.recipient_token],
                    title,
                    body,
                    build_payload(appointment.id, kind),
                )
            except DispatchFailure as exc:
                result.failed += 1
                self._failure_log.warning(
                    "Reminder %s for appointment %s not delivered: %s", kind.value, appointment.id, exc
                )
                continue
            await self._metrics.record_latency(time.perf_counter() - started)
            if not delivery.success:
                result.failed += 1
                self._failure_log.warning(
                    "Reminder %s for appointment %s rejected: %s",
                    kind.value,
                    appointment.id,
                    delivery.errors or "no notification id",
                )
                continue
            await self._ledger.record(appointment.id, kind, now)
            result.reminders_sent += 1
            self._sent_log.info(
                "Reminder %s sent for appointment %s to user %s (notification %s)",
                kind.value,
                appointment.id,
                user.id,
                delivery.notification_id,
            )

    async def _resolve_recipient(self, appointment: Appointment) -> User:
        if not appointment.user_id:
            raise LookupMiss(appointment.id, "no owning user")
        user = await self._store.get_user(appointment.user_id)
        if user is None:
            raise LookupMiss(appointment.id, f"user {appointment.user_id} not found")
        if not user.has_recipient:
            raise LookupMiss(appointment.id, f"user {appointment.user_id} has no recipient token")
        return user

    def _render(self, appointment: Appointment, kind: ReminderKind, instant: datetime) -> tuple[str, str]:
        title_key, body_key = _TEXT_KEYS[kind]
        fallback = get_text(self._locale, "not_specified")
        title = get_text(self._locale, title_key)
        body = get_text(
            self._locale,
            body_key,
            time=to_local(instant, self._timezone).strftime("%H:%M"),
            plate=appointment.plate_number or fallback,
            owner=appointment.owner_name or fallback,
        )
        return title, body


__all__ = ["NOTIFICATION_TYPE", "ReminderEngine", "build_payload"]
