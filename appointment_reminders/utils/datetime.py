from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ..errors import ParseFailure


UTC = timezone.utc
MIDNIGHT = time(0, 0)


def now_utc() -> datetime:
    return datetime.now(tz=UTC)


def ensure_aware(value: datetime, name: str = "now") -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware")
    return value


def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    return ensure_aware(dt, "dt").astimezone(tz)


def local_today(now: datetime, tz: ZoneInfo) -> date:
    """Return the calendar date of ``now`` in ``tz``."""

    return to_local(now, tz).date()


def _parse_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date is empty")
    text = value.strip()
    # Combined date-time strings: the time-of-day field is authoritative.
    for separator in ("T", " "):
        if separator in text:
            text = text.split(separator, 1)[0]
            break
    return date.fromisoformat(text)


def _parse_time(value: object) -> time:
    if value is None:
        return MIDNIGHT
    if isinstance(value, time):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return MIDNIGHT
        parsed = time.fromisoformat(text)
    else:
        raise ValueError(f"unsupported time value {type(value).__name__}")
    if parsed.tzinfo is not None:
        raise ValueError("time must not carry a UTC offset")
    return parsed


def resolve_instant(date_value: object, time_value: object, tz: ZoneInfo) -> datetime:
    """Combine an appointment's local date and time into an aware UTC instant.

    Raises :class:`ParseFailure` when the values do not name exactly one
    instant in ``tz``. Wall-clock times skipped by a DST transition fail;
    repeated wall-clock times resolve to their first occurrence.
    """

    try:
        day = _parse_date(date_value)
        clock = _parse_time(time_value)
    except (TypeError, ValueError) as exc:
        raise ParseFailure(date_value, time_value, str(exc)) from exc

    local = datetime.combine(day, clock, tzinfo=tz).replace(fold=0)
    instant = local.astimezone(UTC)
    if instant.astimezone(tz).replace(tzinfo=None) != local.replace(tzinfo=None):
        raise ParseFailure(date_value, time_value, f"wall-clock time does not exist in {tz.key}")
    return instant


def hours_until(instant: datetime, now: datetime) -> float:
    """Signed hours from ``now`` to ``instant``; negative for past instants."""

    ensure_aware(instant, "instant")
    ensure_aware(now)
    return (instant - now) / timedelta(hours=1)
