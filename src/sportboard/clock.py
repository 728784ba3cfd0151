"""
Clock and calendar services.

Every analyzer receives a ``Clock`` (for "now") and a ``MadridCalendar``
(for day/week boundaries) by injection, so DST and year-boundary behaviour
can be pinned in tests.

Weeks start on Monday 00:00 local time and are half-open ``[start, next)``.
All returned instants are timezone-aware UTC datetimes; arithmetic on days
and weeks happens on the local wall clock so a DST change never shifts a
week boundary.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, runtime_checkable
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Europe/Madrid"


@runtime_checkable
class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant (naive values are taken as UTC)."""

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant


def ensure_utc(instant: datetime) -> datetime:
    """Return an aware UTC datetime; naive datetimes are treated as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


class MadridCalendar:
    """Calendar with Monday-start weeks anchored at a fixed IANA zone."""

    FIRST_WEEKDAY = 0  # Monday

    def __init__(self, timezone_name: str = DEFAULT_TIMEZONE, locale: str = "es_ES"):
        self.timezone_name = timezone_name
        self.locale = locale
        self.tz = ZoneInfo(timezone_name)

    def __repr__(self) -> str:
        return f"MadridCalendar(timezone_name={self.timezone_name!r})"

    def to_local(self, instant: datetime) -> datetime:
        """Convert an instant to local wall-clock time (aware)."""
        return ensure_utc(instant).astimezone(self.tz)

    def _from_local_wall(self, wall: datetime) -> datetime:
        """Attach the zone to a naive wall-clock value and convert to UTC."""
        return wall.replace(tzinfo=self.tz).astimezone(timezone.utc)

    def start_of_day(self, instant: datetime) -> datetime:
        local = self.to_local(instant)
        return self._from_local_wall(datetime(local.year, local.month, local.day))

    def start_of_week(self, instant: datetime) -> datetime:
        local = self.to_local(instant)
        days_back = (local.weekday() - self.FIRST_WEEKDAY) % 7
        monday = datetime(local.year, local.month, local.day) - timedelta(days=days_back)
        return self._from_local_wall(monday)

    def start_of_next_week(self, instant: datetime) -> datetime:
        return self.add_weeks(self.start_of_week(instant), 1)

    def start_of_month(self, instant: datetime) -> datetime:
        local = self.to_local(instant)
        return self._from_local_wall(datetime(local.year, local.month, 1))

    def add_days(self, instant: datetime, days: int) -> datetime:
        """Move ``days`` calendar days on the local wall clock."""
        wall = self.to_local(instant).replace(tzinfo=None)
        return self._from_local_wall(wall + timedelta(days=days))

    def add_weeks(self, instant: datetime, weeks: int) -> datetime:
        return self.add_days(instant, 7 * weeks)

    def day_difference(self, start: datetime, end: datetime) -> int:
        """Whole days elapsed from ``start`` to ``end`` (wall clock, truncated toward zero)."""
        a = self.to_local(start).replace(tzinfo=None)
        b = self.to_local(end).replace(tzinfo=None)
        if b >= a:
            return (b - a).days
        return -((a - b).days)

    def week_range(self, instant: datetime) -> tuple[datetime, datetime]:
        """Half-open ``[start, next)`` range of the week containing ``instant``."""
        return self.start_of_week(instant), self.start_of_next_week(instant)

    def is_same_day(self, a: datetime, b: datetime) -> bool:
        return self.start_of_day(a) == self.start_of_day(b)


_default_calendar: Optional[MadridCalendar] = None


def get_calendar() -> MadridCalendar:
    """Get the shared calendar for the configured timezone."""
    global _default_calendar
    if _default_calendar is None:
        from .config import get_settings

        settings = get_settings()
        _default_calendar = MadridCalendar(settings.timezone, settings.locale)
    return _default_calendar
