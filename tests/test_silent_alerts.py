"""Tests for the silent alerts."""

import pytest

from sportboard.clock import FixedClock
from sportboard.services.efficiency_trend import EfficiencyTrend, TrendDirection
from sportboard.services.fatigue import FatigueDiagnosis, FatigueLevel
from sportboard.services.silent_alerts import AlertSeverity, SilentAlertsService


@pytest.fixture
def service(calendar, madrid):
    # Current week: 2024-05-06
    return SilentAlertsService(calendar=calendar, clock=FixedClock(madrid(2024, 5, 10, 12)))


@pytest.fixture
def spiking_runs(make_activity, madrid):
    """One hour in each of the four previous weeks, two hours this week."""
    runs = [make_activity(madrid(2024, 4, day, 7), minutes=60, speed=2.9) for day in (8, 15, 22, 29)]
    runs.append(make_activity(madrid(2024, 5, 6, 7), minutes=60, speed=3.5))
    runs.append(make_activity(madrid(2024, 5, 8, 7), minutes=60, speed=3.5))
    return runs


class TestSilentAlerts:
    """Tests for SilentAlertsService.evaluate_from_activities."""

    def test_no_alerts_without_signals(self, service):
        assert service.evaluate_from_activities([]) == []

    def test_load_spike(self, service, spiking_runs):
        alerts = service.evaluate_from_activities(spiking_runs)

        assert [a.id for a in alerts] == ["load_spike"]
        assert alerts[0].severity == AlertSeverity.WARNING
        assert alerts[0].title == "Carga elevada"

    def test_baseline_counts_empty_weeks(self, service, make_activity, madrid):
        # Baseline 0.5 h/week from (1 + 1 + 0 + 0) / 4; this week is 0.8 h
        runs = [
            make_activity(madrid(2024, 4, 22, 7), minutes=60),
            make_activity(madrid(2024, 4, 29, 7), minutes=60),
            make_activity(madrid(2024, 5, 7, 7), minutes=48),
        ]
        assert [a.id for a in service.evaluate_from_activities(runs)] == ["load_spike"]

    def test_all_alerts_in_rule_order(self, service, spiking_runs, make_profile):
        trend = EfficiencyTrend(
            direction=TrendDirection.DECLINING, confidence=0.8, reasons=["Ritmo en rodajes más lento"]
        )
        fatigue = FatigueDiagnosis(
            level=FatigueLevel.HIGH, causes=["A", "B", "C"], action="Descansa.", score=70
        )

        alerts = service.evaluate_from_activities(
            spiking_runs, make_profile(easy=3.0), trend, None, fatigue
        )

        assert [a.id for a in alerts] == ["load_spike", "trend_declining", "fatigue_high", "week_broken"]
        assert alerts[1].message.endswith("Ritmo en rodajes más lento")
        assert alerts[2].message == "A. B. Descansa."
        assert alerts[3].severity == AlertSeverity.INFO

    def test_low_confidence_decline_is_silent(self, service):
        trend = EfficiencyTrend(direction=TrendDirection.DECLINING, confidence=0.4, reasons=[])
        assert service.evaluate_from_activities([], efficiency_trend=trend) == []

    def test_week_broken_needs_valid_profile(self, service, spiking_runs, make_profile):
        alerts = service.evaluate_from_activities(spiking_runs, make_profile(easy=3.0, confidence=0.2))
        assert "week_broken" not in [a.id for a in alerts]

    def test_week_broken_needs_two_runs(self, service, make_activity, make_profile, madrid):
        runs = [make_activity(madrid(2024, 5, 6, 7), minutes=60, speed=3.5)]
        assert service.evaluate_from_activities(runs, make_profile(easy=3.0)) == []

    def test_easy_week_is_not_broken(self, service, make_activity, make_profile, madrid):
        runs = [make_activity(madrid(2024, 5, d, 7), minutes=30, speed=2.9) for d in (6, 8)]
        assert service.evaluate_from_activities(runs, make_profile(easy=3.0)) == []

    def test_alert_to_dict(self, service, spiking_runs):
        data = service.evaluate_from_activities(spiking_runs)[0].to_dict()
        assert data["id"] == "load_spike"
        assert data["severity"] == "warning"
