"""Tests for the data-quality gate and the run session classifier."""

import pytest

from sportboard.models.activity import ActivityLap
from sportboard.services.data_quality import DataQuality
from sportboard.services.run_classifier import (
    RunClassification,
    RunClassifier,
    RunSessionType,
    get_run_classifier,
)


# ============================================================================
# Data Quality Gate Tests
# ============================================================================

class TestDataQuality:
    """Tests for the capability predicates."""

    def test_complete_run(self, make_activity, make_splits, madrid):
        activity = make_activity(
            madrid(2024, 3, 28, 8), minutes=40, has_heartrate=True,
            average_heartrate=150, has_splits_metric=True,
        )
        activity.splits = make_splits(activity.id, [(330, 150), (325, 152), (320, 155)])

        quality = DataQuality.evaluate(activity)

        assert quality.can_use_heartrate_metrics
        assert quality.can_use_split_metrics
        assert quality.can_classify
        assert quality.missing_reasons == []
        assert quality.tooltip_message("FC") is None

    def test_heartrate_flag_without_value(self, make_activity, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8), has_heartrate=True)
        assert not DataQuality.evaluate(activity).has_heartrate

    def test_single_split_is_not_enough(self, make_activity, make_splits, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8), has_splits_metric=True)
        activity.splits = make_splits(activity.id, [(300, None)])
        assert not DataQuality.evaluate(activity).has_splits

    def test_explicit_splits_override_activity_splits(self, make_activity, make_splits, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8))
        splits = make_splits(activity.id, [(300, None), (310, None)])
        assert DataQuality.evaluate(activity, splits).has_splits

    def test_non_run_is_gated(self, make_activity, madrid):
        ride = make_activity(madrid(2024, 3, 28, 8), sport_type="Ride", speed=8.0)
        quality = DataQuality.evaluate(ride)

        assert not quality.can_classify
        assert "Solo aplicable a actividades de carrera" in quality.missing_reasons

    def test_tooltip_for_short_activity(self, make_activity, madrid):
        short = make_activity(madrid(2024, 3, 28, 8), minutes=4, speed=3.0)
        message = DataQuality.evaluate(short).tooltip_message("consistency")

        assert message.startswith("No se puede calcular consistency:")
        assert "Duración insuficiente para análisis" in message


# ============================================================================
# Classifier Tests
# ============================================================================

class TestRunClassifier:
    """Tests for RunClassifier.classify."""

    @pytest.fixture
    def classifier(self):
        return RunClassifier()

    def test_marked_laps_are_intervals(self, classifier, make_activity, madrid):
        """Six laps in a 45 minute session classify as intervals."""
        activity = make_activity(madrid(2024, 3, 28, 8), minutes=45, has_laps=True)
        activity.laps = [
            ActivityLap(activity.id, i, 1000, 270, 270) for i in range(1, 7)
        ]

        result = classifier.classify(activity)

        assert result.type == RunSessionType.INTERVALS
        assert result.confidence == 0.85
        assert "Varios intervalos marcados" in result.reasons
        assert result.should_show

    def test_non_run_is_unknown(self, classifier, make_activity, madrid):
        result = classifier.classify(make_activity(madrid(2024, 3, 28, 8), sport_type="Swim"))

        assert result.type == RunSessionType.UNKNOWN
        assert result.confidence == 0.0
        assert not result.should_show
        assert result.reasons

    def test_long_run(self, classifier, make_activity, madrid):
        result = classifier.classify(make_activity(madrid(2024, 3, 28, 8), minutes=125, speed=2.9))
        assert result.type == RunSessionType.LONG
        assert result.confidence == 0.9

    def test_long_by_distance(self, classifier, make_activity, madrid):
        result = classifier.classify(make_activity(madrid(2024, 3, 28, 8), minutes=80, speed=3.9))
        assert result.type == RunSessionType.LONG
        assert result.confidence == 0.6

    def test_tempo_from_profile(self, classifier, make_activity, madrid):
        result = classifier.classify(
            make_activity(madrid(2024, 3, 28, 8), minutes=40, speed=3.5),
            easy_pace_ms=3.0, threshold_pace_ms=3.6,
        )
        assert result.type == RunSessionType.TEMPO
        assert "Ritmo en zona de umbral" in result.reasons

    def test_short_fast_session_is_race(self, classifier, make_activity, madrid):
        result = classifier.classify(
            make_activity(madrid(2024, 3, 28, 8), minutes=20, speed=4.0),
            easy_pace_ms=3.0, threshold_pace_ms=3.6,
        )
        assert result.type == RunSessionType.RACE
        assert result.confidence == 0.7

    def test_easy_between_easy_and_threshold(self, classifier, make_activity, madrid):
        result = classifier.classify(
            make_activity(madrid(2024, 3, 28, 8), minutes=50, speed=3.2),
            easy_pace_ms=3.0, threshold_pace_ms=3.6,
        )
        assert result.type == RunSessionType.EASY
        assert result.confidence == 0.7

    def test_recovery_below_easy_pace(self, classifier, make_activity, madrid):
        result = classifier.classify(
            make_activity(madrid(2024, 3, 28, 8), minutes=35, speed=2.6),
            easy_pace_ms=3.0, threshold_pace_ms=3.6,
        )
        assert result.type == RunSessionType.RECOVERY
        assert result.confidence == 0.75

    def test_elevated_heartrate_at_slow_pace(self, classifier, make_activity, madrid):
        result = classifier.classify(
            make_activity(madrid(2024, 3, 28, 8), minutes=40, speed=2.5, average_heartrate=140)
        )
        assert result.type == RunSessionType.RECOVERY
        assert result.confidence == 0.55
        assert "FC elevada para ritmo lento (posible fatiga)" in result.reasons

    def test_fallback_typical_duration(self, classifier, make_activity, madrid):
        result = classifier.classify(make_activity(madrid(2024, 3, 28, 8), minutes=40, speed=3.0))
        assert result.type == RunSessionType.EASY
        assert result.confidence == 0.5
        assert result.reasons == ["Duración típica de rodaje"]

    def test_short_session_without_signals_is_hidden(self, classifier, make_activity, madrid):
        result = classifier.classify(make_activity(madrid(2024, 3, 28, 8), minutes=15, speed=3.0))
        assert result.type == RunSessionType.UNKNOWN
        assert result.confidence == 0.3
        assert not result.should_show

    def test_confidence_always_in_unit_range(self, classifier, make_activity, madrid):
        for minutes in (5, 15, 22, 30, 45, 70, 95, 130):
            for speed in (2.2, 2.8, 3.3, 3.7, 4.3):
                result = classifier.classify(
                    make_activity(madrid(2024, 3, 28, 8), minutes=minutes, speed=speed, average_heartrate=150),
                    easy_pace_ms=3.0, threshold_pace_ms=3.6,
                )
                assert 0.0 <= result.confidence <= 1.0
                if result.type == RunSessionType.UNKNOWN:
                    assert not result.should_show

    def test_split_variability_needs_three_splits(self, make_activity, make_splits, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8))
        assert RunClassifier.split_pace_variability(make_splits(activity.id, [(300, None), (400, None)])) == 0.0
        assert RunClassifier.split_pace_variability(
            make_splits(activity.id, [(300, None), (400, None), (300, None)])
        ) > 0.0

    def test_classification_to_dict(self):
        result = RunClassification(type=RunSessionType.TEMPO, confidence=0.7, reasons=["x"])
        data = result.to_dict()
        assert data["display_name"] == "Ritmo"
        assert data["should_show"] is True

    def test_singleton(self):
        assert get_run_classifier() is get_run_classifier()
