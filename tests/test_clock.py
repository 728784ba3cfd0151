"""Tests for the clock and the Madrid calendar.

This module tests:
- Monday-start week boundaries across both DST transitions
- Week boundaries at the turn of the year
- Wall-clock day arithmetic
- Fixed clocks
"""

from datetime import datetime, timedelta, timezone

from sportboard.clock import FixedClock, MadridCalendar, SystemClock, ensure_utc


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestWeekBoundaries:
    """Tests for start_of_week / start_of_next_week / week_range."""

    def test_week_containing_spring_dst_change(self, calendar, madrid):
        """Week start is Monday 00:00 CET and the next one Monday 00:00 CEST."""
        now = madrid(2024, 3, 28, 12)
        start, end = calendar.week_range(now)

        assert start == utc(2024, 3, 24, 23)
        assert end == utc(2024, 3, 31, 22)
        # The week is one hour short in real time, never in calendar days
        assert end - start == timedelta(days=7, hours=-1)

    def test_week_boundary_stable_across_snapshots(self, calendar, madrid):
        """Every instant of the same week yields the same Monday 00:00 Madrid."""
        instants = [
            madrid(2024, 3, 25, 0),
            madrid(2024, 3, 28, 12),
            madrid(2024, 3, 31, 1, 59),
            madrid(2024, 3, 31, 3, 30),
            madrid(2024, 3, 31, 23, 59, 59),
        ]
        starts = {calendar.start_of_week(i) for i in instants}
        assert starts == {madrid(2024, 3, 25)}

    def test_week_containing_autumn_dst_change(self, calendar, madrid):
        start, end = calendar.week_range(madrid(2024, 10, 27, 12))

        assert start == utc(2024, 10, 20, 22)
        assert end == utc(2024, 10, 27, 23)

    def test_year_boundary(self, calendar, madrid):
        """2025-01-01 belongs to the week starting Monday 2024-12-30."""
        assert calendar.start_of_week(madrid(2025, 1, 1, 10)) == utc(2024, 12, 29, 23)

    def test_monday_midnight_is_start_of_its_own_week(self, calendar, madrid):
        monday = madrid(2024, 4, 1)
        assert calendar.start_of_week(monday) == monday
        assert calendar.start_of_week(monday - timedelta(seconds=1)) == madrid(2024, 3, 25)

    def test_start_of_next_week(self, calendar, madrid):
        assert calendar.start_of_next_week(madrid(2024, 3, 28, 12)) == madrid(2024, 4, 1)


class TestDayArithmetic:
    """Tests for wall-clock day arithmetic."""

    def test_add_days_across_dst_keeps_wall_clock(self, calendar, madrid):
        assert calendar.add_days(madrid(2024, 3, 30), 1) == madrid(2024, 3, 31)
        assert calendar.add_days(madrid(2024, 3, 31), 1) == madrid(2024, 4, 1)

    def test_add_weeks_backwards(self, calendar, madrid):
        assert calendar.add_weeks(madrid(2024, 4, 1), -2) == madrid(2024, 3, 18)

    def test_day_difference_over_short_day(self, calendar, madrid):
        """23 real hours across the spring change still count as one day."""
        assert calendar.day_difference(madrid(2024, 3, 30, 12), madrid(2024, 3, 31, 12)) == 1

    def test_day_difference_truncates(self, calendar, madrid):
        assert calendar.day_difference(madrid(2024, 5, 1, 8), madrid(2024, 5, 3, 7)) == 1
        assert calendar.day_difference(madrid(2024, 5, 3, 7), madrid(2024, 5, 1, 8)) == -1

    def test_start_of_day(self, calendar, madrid):
        assert calendar.start_of_day(madrid(2024, 7, 10, 0, 30)) == utc(2024, 7, 9, 22)

    def test_start_of_month(self, calendar, madrid):
        assert calendar.start_of_month(madrid(2024, 4, 15, 9)) == utc(2024, 3, 31, 22)

    def test_is_same_day_uses_local_dates(self, calendar, madrid):
        assert calendar.is_same_day(madrid(2024, 3, 31, 0, 10), madrid(2024, 3, 31, 23, 30))
        # Same UTC date, different Madrid dates
        assert not calendar.is_same_day(utc(2024, 6, 1, 21, 0), utc(2024, 6, 1, 23, 0))


class TestClocks:
    """Tests for the clock implementations."""

    def test_fixed_clock_treats_naive_as_utc(self):
        clock = FixedClock(datetime(2024, 3, 28, 11, 0))
        assert clock.now() == utc(2024, 3, 28, 11)
        assert clock.now().tzinfo is not None

    def test_system_clock_is_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_ensure_utc_converts_offsets(self):
        aware = datetime(2024, 3, 28, 12, tzinfo=timezone(timedelta(hours=1)))
        assert ensure_utc(aware) == utc(2024, 3, 28, 11)

    def test_calendar_repr_names_zone(self):
        assert "Europe/Madrid" in repr(MadridCalendar())
