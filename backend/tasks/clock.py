# tasks/clock.py
"""
Time context shared by scoring, ranking and due-date resolution.

Nothing in the engine reads the clock on its own: callers build a
``TimeContext`` (usually ``TimeContext.current()``) and pass it in. All
comparisons happen on naive local wall-clock datetimes in ``TIME_ZONE``.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

END_OF_DAY = datetime.time(23, 59)
EVENING = datetime.time(18, 0)
MORNING = datetime.time(9, 0)


def to_wall_clock(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Converts an aware datetime to naive local time; naive values pass through."""
    if value is None:
        return None
    if timezone.is_aware(value):
        return timezone.localtime(value).replace(tzinfo=None)
    return value


def to_storage(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Makes a wall-clock datetime aware when the project stores aware datetimes."""
    if value is None or not settings.USE_TZ or timezone.is_aware(value):
        return value
    return timezone.make_aware(value)


@dataclass(frozen=True)
class TimeContext:
    """A snapshot of "now" injected into every time-dependent computation."""

    now: datetime.datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "now", to_wall_clock(self.now))

    @classmethod
    def current(cls) -> "TimeContext":
        return cls(timezone.now())

    @property
    def hour(self) -> int:
        return self.now.hour

    @property
    def today(self) -> datetime.date:
        return self.now.date()


def _at(day: datetime.date, at: datetime.time) -> datetime.datetime:
    return datetime.datetime.combine(day, at)


def resolve_due_token(token: Optional[str], now: datetime.datetime) -> Optional[datetime.datetime]:
    """
    Resolves a relative due-date token or an ISO string against ``now``.

    Returns a naive wall-clock datetime, or None if the token is empty or
    cannot be understood.
    """
    if not token:
        return None

    now = to_wall_clock(now)
    today = now.date()
    lowered = token.strip().lower()

    if "today" in lowered:
        return _at(today, END_OF_DAY)
    if "tomorrow" in lowered:
        return _at(today + datetime.timedelta(days=1), END_OF_DAY)
    if "next week" in lowered:
        return _at(today + datetime.timedelta(days=7), END_OF_DAY)
    if "this week" in lowered:
        # Sunday closes the week; on a Sunday that is today.
        return _at(today + datetime.timedelta(days=6 - today.weekday()), END_OF_DAY)
    if "this evening" in lowered or "tonight" in lowered:
        return _at(today, EVENING)
    if "this morning" in lowered:
        return _at(today, MORNING)

    try:
        parsed = parse_datetime(token.strip())
        if parsed is not None:
            return to_wall_clock(parsed)
        parsed_day = parse_date(token.strip())
    except ValueError:
        return None
    if parsed_day is not None:
        return _at(parsed_day, END_OF_DAY)
    return None
