"""
tally.engine.weeks — Week Window Arithmetic
============================================

A week runs from Monday 00:00:00.000 to Sunday 23:59:59.999 (UTC).
"Now" is always passed in explicitly so the boundaries are deterministic
under test; :func:`utcnow` is only the default at the outermost call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

__all__ = [
    "WeekWindow",
    "as_utc",
    "recent_weeks",
    "utcnow",
    "week_end",
    "week_start",
    "week_window",
]

WEEK = timedelta(days=7)
_END_OFFSET = WEEK - timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def week_start(reference: datetime) -> datetime:
    """Monday 00:00:00.000 of the week containing *reference*.

    ``weekday()`` is 0 for Monday and 6 for Sunday, so a Sunday steps back
    six days to the preceding Monday.
    """
    ref = as_utc(reference)
    midnight = ref.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=ref.weekday())


def week_end(start: datetime) -> datetime:
    """Sunday 23:59:59.999 of the week beginning at *start*."""
    return start + _END_OFFSET


@dataclass(frozen=True, slots=True)
class WeekWindow:
    """Inclusive ``[start, end]`` bounds of one calendar week."""

    start: datetime
    end: datetime

    @classmethod
    def containing(cls, reference: datetime) -> WeekWindow:
        start = week_start(reference)
        return cls(start=start, end=week_end(start))

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_utc(instant) <= self.end

    def shifted(self, weeks: int) -> WeekWindow:
        start = self.start + weeks * WEEK
        return WeekWindow(start=start, end=week_end(start))


def week_window(reference: datetime | None = None) -> WeekWindow:
    """Window for the week containing *reference* (defaults to now)."""
    return WeekWindow.containing(reference if reference is not None else utcnow())


def recent_weeks(count: int, reference: datetime | None = None) -> list[WeekWindow]:
    """The *count* most recent weeks ending with the current one, oldest first."""
    current = week_window(reference)
    return [current.shifted(-offset) for offset in range(count - 1, -1, -1)]
