from __future__ import annotations

from typing import FrozenSet, Mapping

from ..models.reminder import DEFAULT_WINDOWS, ReminderKind, ReminderWindow


def classify(
    hours: float,
    windows: Mapping[ReminderKind, ReminderWindow] = DEFAULT_WINDOWS,
) -> FrozenSet[ReminderKind]:
    """Return every reminder kind whose window contains ``hours``.

    Windows may overlap; each matching kind is returned.
    """

    return frozenset(kind for kind, window in windows.items() if window.contains(hours))


def ordered(kinds: FrozenSet[ReminderKind]) -> list[ReminderKind]:
    """Sort kinds in declaration order of :class:`ReminderKind`."""

    order = list(ReminderKind)
    return sorted(kinds, key=order.index)
