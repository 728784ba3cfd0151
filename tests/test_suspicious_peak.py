"""Tests for the suspicious-peak detector."""

import pytest

from sportboard.clock import FixedClock
from sportboard.exceptions import RepositoryError
from sportboard.services.suspicious_peak import SuspiciousPeakDetector


@pytest.fixture
def detector(calendar, madrid):
    # Current week: 2024-05-06; compared week: 2024-04-22
    return SuspiciousPeakDetector(calendar=calendar, clock=FixedClock(madrid(2024, 5, 10, 12)))


@pytest.fixture
def two_windows(make_activity, madrid):
    def build(old_speed, current_speed, minutes=40):
        return [
            make_activity(madrid(2024, 4, 22, 7), minutes=minutes, speed=old_speed),
            make_activity(madrid(2024, 4, 25, 7), minutes=minutes, speed=old_speed),
            make_activity(madrid(2024, 5, 6, 7), minutes=minutes, speed=current_speed),
            make_activity(madrid(2024, 5, 8, 7), minutes=minutes, speed=current_speed),
        ]

    return build


class TestSuspiciousPeak:
    """Tests for SuspiciousPeakDetector.evaluate_from_activities."""

    def test_fast_improvement_is_flagged(self, detector, two_windows):
        result = detector.evaluate_from_activities(two_windows(2.8, 3.0))

        assert result.detected
        assert result.improvement_sec_per_km == pytest.approx(1000 / 2.8 - 1000 / 3.0)
        assert result.message.startswith("Has mejorado unos 24 s/km en 2 semanas.")
        assert result.window_weeks == 2

    def test_small_improvement_is_not_flagged(self, detector, two_windows):
        result = detector.evaluate_from_activities(two_windows(2.9, 3.0))

        assert not result.detected
        assert result.message == ""
        assert result.improvement_sec_per_km == pytest.approx(1000 / 2.9 - 1000 / 3.0)

    def test_intermediate_week_is_skipped(self, detector, make_activity, madrid):
        runs = [
            make_activity(madrid(2024, 4, 29, 7), speed=2.5),
            make_activity(madrid(2024, 5, 1, 7), speed=2.5),
            make_activity(madrid(2024, 5, 6, 7), speed=3.0),
            make_activity(madrid(2024, 5, 8, 7), speed=3.0),
        ]
        result = detector.evaluate_from_activities(runs)

        assert not result.detected
        assert result.improvement_sec_per_km is None

    def test_short_runs_do_not_count(self, detector, two_windows):
        result = detector.evaluate_from_activities(two_windows(2.8, 3.0, minutes=15))
        assert result.improvement_sec_per_km is None

    def test_repository_failure_propagates(self, calendar, madrid):
        class FailingRepository:
            def fetch_running_activities(self, limit=None, order="desc"):
                raise RepositoryError("boom", operation="fetch")

        detector = SuspiciousPeakDetector(FailingRepository(), FixedClock(madrid(2024, 5, 10)), calendar)
        with pytest.raises(RepositoryError):
            detector.evaluate()
