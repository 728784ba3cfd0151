"""Tests for the consistency score."""

import pytest

from sportboard.clock import FixedClock
from sportboard.services.consistency import ConsistencyService


@pytest.fixture
def service(calendar, madrid):
    # Thursday of the week starting Monday 2024-04-29
    return ConsistencyService(calendar=calendar, clock=FixedClock(madrid(2024, 5, 2, 12)))


class TestConsistencyScore:
    """Tests for ConsistencyService.compute_from_activities."""

    def test_four_regular_weeks(self, service, make_activity, make_profile, madrid):
        """Four weeks, no long gaps, stable load and an 80% easy share score 89."""
        runs = []
        for monday, thursday in [((4, 8), (4, 11)), ((4, 15), (4, 18)), ((4, 22), (4, 25)), ((4, 29), (5, 2))]:
            runs.append(make_activity(madrid(2024, *monday, 7), minutes=40, speed=2.9))
            runs.append(make_activity(madrid(2024, *thursday, 7), minutes=10, speed=3.5))

        result = service.compute_from_activities(runs, make_profile(easy=3.0))

        assert result.consecutive_weeks == 4
        assert result.gaps_over_4_days == 0
        assert result.weekly_load_variation == pytest.approx(0.0)
        assert result.easy_hard_deviation == pytest.approx(0.05)
        assert result.score == 70 + 4 + 5 + 5 + 5
        assert result.reasons == [
            "Racha: 4 semanas",
            "Sin huecos largos sin entrenar",
            "Carga semanal estable",
            "Buena proporción fácil/duro",
        ]

    def test_one_run_per_week_counts_gaps(self, service, make_activity, make_profile, madrid):
        runs = [
            make_activity(madrid(2024, 4, day, 7), minutes=60, speed=speed)
            for day, speed in [(8, 2.9), (15, 2.9), (22, 2.9), (29, 3.5)]
        ]

        result = service.compute_from_activities(runs, make_profile(easy=3.0))

        assert result.consecutive_weeks == 4
        assert result.gaps_over_4_days == 3
        assert "3 huecos de más de 4 días" in result.reasons
        assert result.score == 70 + 4 - 15 + 5 + 5

    def test_no_activity(self, service):
        result = service.compute_from_activities([])

        assert result.consecutive_weeks == 0
        assert result.score == 70 - 20 + 5 + 5
        assert result.reasons[0] == "Sin racha reciente"

    def test_streak_walks_back_from_last_active_week(self, service, make_activity, madrid):
        runs = [
            make_activity(madrid(2024, 4, 9, 7), minutes=40),
            make_activity(madrid(2024, 4, 12, 7), minutes=40),
            make_activity(madrid(2024, 4, 16, 7), minutes=40),
        ]

        result = service.compute_from_activities(runs)

        assert result.consecutive_weeks == 2
        assert result.reasons[0] == "Racha: 2 semanas"

    def test_without_profile_nothing_counts_as_easy(self, service, make_activity, madrid):
        runs = [make_activity(madrid(2024, 4, d, 7), minutes=40, speed=2.5) for d in (29, 30)]

        result = service.compute_from_activities(runs)

        assert result.easy_hard_deviation == pytest.approx(0.75)
        assert "Proporción fácil/duro desviada" in result.reasons

    def test_runs_outside_window_are_ignored(self, service, make_activity, madrid):
        old = make_activity(madrid(2024, 1, 1, 7), minutes=40)
        assert service.compute_from_activities([old]).consecutive_weeks == 0

    def test_very_variable_load(self, service, make_activity, madrid):
        runs = [
            make_activity(madrid(2024, 4, 8, 7), minutes=10),
            make_activity(madrid(2024, 4, 11, 7), minutes=10),
            make_activity(madrid(2024, 4, 15, 7), minutes=300),
        ]
        result = service.compute_from_activities(runs)
        assert "Carga semanal muy variable" in result.reasons

    def test_score_is_clamped(self, service, make_activity, make_profile, madrid):
        patterns = [
            [(2, 10), (20, 300)],
            [(d, 20 + d * 7) for d in range(1, 30, 6)],
            [(d, 45) for d in range(1, 30)],
        ]
        for pattern in patterns:
            runs = [make_activity(madrid(2024, 3, d, 7), minutes=m, speed=2.7 + d % 3 / 2) for d, m in pattern]
            for profile in (None, make_profile()):
                score = service.compute_from_activities(runs, profile).score
                assert 0 <= score <= 100

    def test_to_dict(self, service):
        data = service.compute_from_activities([]).to_dict()
        assert set(data) == {
            "consecutive_weeks", "gaps_over_4_days", "weekly_load_variation",
            "easy_hard_deviation", "score", "reasons",
        }


class TestConsistencyFromRepository:
    """Tests for compute() against the database."""

    def test_compute_reads_running_activities(self, db, calendar, make_activity, madrid):
        db.save_activities([
            make_activity(madrid(2024, 4, 29, 7), minutes=40),
            make_activity(madrid(2024, 4, 30, 7), minutes=40, sport_type="Ride"),
        ])
        service = ConsistencyService(db, FixedClock(madrid(2024, 5, 2, 12)), calendar)

        assert service.compute().consecutive_weeks == 1
