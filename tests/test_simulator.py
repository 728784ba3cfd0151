"""Tests for the what-if simulator."""

import pytest

from sportboard.clock import FixedClock
from sportboard.services.simulator import SimulatorInput, SimulatorService, simulate


class TestSimulate:
    """Tests for the simulate function."""

    def test_more_days_improves(self):
        result = simulate(3, 3.0, 1, SimulatorInput(days_per_week=4, volume_change_percent=0, hard_sessions_per_week=1))

        assert result.consistency_impact == "mejor"
        assert result.risk_level == "bajo"
        assert result.trend_expectation == "mejorando"
        assert result.reasons == ["Más días de entreno suele mejorar la consistencia."]

    def test_aggressive_scenario(self):
        result = simulate(4, 3.0, 1, SimulatorInput(days_per_week=2, volume_change_percent=30, hard_sessions_per_week=3))

        assert result.consistency_impact == "peor"
        assert result.risk_level == "alto"
        assert result.trend_expectation == "empeorando"
        assert result.reasons == [
            "Menos de 3 días puede bajar la consistencia.",
            "Subir mucho el volumen aumenta el riesgo de lesión.",
            "Varias sesiones duras con pocos días puede acumular fatiga.",
            "Demasiadas sesiones exigentes respecto a días disponibles.",
        ]

    def test_unchanged_scenario_is_reasonable(self):
        result = simulate(3, 3.0, 1, SimulatorInput(days_per_week=3, volume_change_percent=0, hard_sessions_per_week=1))

        assert (result.consistency_impact, result.risk_level, result.trend_expectation) == ("igual", "bajo", "estable")
        assert result.reasons == ["Escenario razonable. Sin cambios drásticos."]

    def test_many_hard_sessions_on_few_days_is_medium(self):
        result = simulate(4, 3.0, 1, SimulatorInput(days_per_week=4, volume_change_percent=10, hard_sessions_per_week=3))

        assert result.risk_level == "medio"
        assert result.trend_expectation == "estable"

    def test_volume_increase_within_twenty_percent(self):
        result = simulate(4, 3.0, 1, SimulatorInput(days_per_week=4, volume_change_percent=20, hard_sessions_per_week=1))
        assert result.risk_level == "bajo"

    def test_fewer_days_but_three_or_more(self):
        result = simulate(5, 4.0, 1, SimulatorInput(days_per_week=3, volume_change_percent=-10, hard_sessions_per_week=1))
        assert result.consistency_impact == "igual"


class TestSimulatorService:
    """Tests for SimulatorService against the database."""

    def test_current_metrics_from_this_week(self, db, calendar, make_activity, make_profile, madrid):
        db.save_activities([
            make_activity(madrid(2024, 5, 6, 7), minutes=30, speed=2.9),
            make_activity(madrid(2024, 5, 6, 19), minutes=30, speed=2.9),
            make_activity(madrid(2024, 5, 8, 7), minutes=60, speed=3.5),
            make_activity(madrid(2024, 5, 3, 7), minutes=60, speed=3.5),
        ])
        db.insert_profile(make_profile(easy=3.0))
        db.save()
        service = SimulatorService(db, FixedClock(madrid(2024, 5, 10, 12)), calendar)

        current = service.current_metrics()

        assert current.days_per_week == 2
        assert current.volume_hours_per_week == pytest.approx(2.0)
        assert current.hard_sessions_per_week == 1

    def test_simulate_from_current(self, db, calendar, make_activity, madrid):
        db.save_activity(make_activity(madrid(2024, 5, 6, 7), minutes=60))
        service = SimulatorService(db, FixedClock(madrid(2024, 5, 10, 12)), calendar)

        result = service.simulate_from_current(
            SimulatorInput(days_per_week=3, volume_change_percent=0, hard_sessions_per_week=0)
        )

        assert result.consistency_impact == "mejor"
        assert result.to_dict()["trend_expectation"] == "mejorando"
