"""
Run session classifier.

Tags a running session as recovery, easy, long, tempo, intervals or race
from duration, distance, pace relative to the runner profile, heart rate
and split-pace variability. Every candidate comes with a human-readable
reason; the highest-confidence candidate wins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..metrics.stats import coefficient_of_variation, split_paces
from ..models.activity import Activity, ActivityLap, ActivitySplit
from .data_quality import DataQuality


class RunSessionType(str, Enum):
    """Kind of running session."""
    RECOVERY = "recovery"
    EASY = "easy"
    LONG = "long"
    TEMPO = "tempo"
    INTERVALS = "intervals"
    RACE = "race"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    RunSessionType.RECOVERY: "Recuperación",
    RunSessionType.EASY: "Rodaje",
    RunSessionType.LONG: "Largo",
    RunSessionType.TEMPO: "Ritmo",
    RunSessionType.INTERVALS: "Series",
    RunSessionType.RACE: "Carrera",
    RunSessionType.UNKNOWN: "Sin clasificar",
}


@dataclass
class RunClassification:
    """Classification result with confidence and reasons."""

    type: RunSessionType
    confidence: float
    reasons: List[str] = field(default_factory=list)

    MIN_CONFIDENCE_TO_SHOW = 0.4

    @property
    def should_show(self) -> bool:
        return self.type != RunSessionType.UNKNOWN and self.confidence >= self.MIN_CONFIDENCE_TO_SHOW

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "display_name": self.type.display_name,
            "confidence": self.confidence,
            "reasons": self.reasons,
            "should_show": self.should_show,
        }


class RunClassifier:
    """Rule-based session classifier."""

    STRUCTURED_LAPS = 2           # more than this many laps = intervals
    SHORT_SESSION_MIN = 25
    LONG_SESSION_MIN = 85
    LONG_SESSION_KM = 18
    HIGH_SPLIT_VARIABILITY = 0.15
    SLOW_PACE_SEC_PER_KM = 360    # 6:00 min/km
    ELEVATED_HR = 140

    def classify(
        self,
        activity: Activity,
        splits: Optional[Sequence[ActivitySplit]] = None,
        laps: Optional[Sequence[ActivityLap]] = None,
        easy_pace_ms: Optional[float] = None,
        threshold_pace_ms: Optional[float] = None,
    ) -> RunClassification:
        """
        Classify a running session.

        Args:
            activity: Activity to classify
            splits: Splits to use instead of the activity's own
            laps: Laps to use instead of the activity's own
            easy_pace_ms: Easy pace from the runner profile (m/s)
            threshold_pace_ms: Threshold pace from the runner profile (m/s)

        Returns:
            RunClassification (unknown with the missing capabilities when gated)
        """
        quality = DataQuality.evaluate(activity, splits)
        if not quality.can_classify:
            return RunClassification(
                type=RunSessionType.UNKNOWN,
                confidence=0.0,
                reasons=quality.missing_reasons,
            )

        duration_min = activity.moving_time / 60
        distance_km = activity.distance / 1000
        pace_ms = activity.average_speed
        pace_sec_per_km = 1000 / pace_ms if pace_ms > 0 else 0.0
        hr = activity.average_heartrate

        splits_to_use = splits if splits is not None else activity.sorted_splits
        laps_to_use = laps if laps is not None else activity.sorted_laps
        variability = self.split_pace_variability(splits_to_use)

        candidates: List[Tuple[RunSessionType, float]] = []
        reasons: List[str] = []

        # Structured laps
        if laps_to_use is not None and len(laps_to_use) > self.STRUCTURED_LAPS:
            candidates.append((RunSessionType.INTERVALS, 0.85))
            reasons.append("Varios intervalos marcados")

        # Short and fast, or short and erratic
        if duration_min < self.SHORT_SESSION_MIN and pace_ms > 0:
            if threshold_pace_ms and threshold_pace_ms > 0 and pace_ms > threshold_pace_ms * 1.05:
                candidates.append((RunSessionType.RACE, 0.7))
                reasons.append("Duración corta y ritmo por encima del umbral")
            elif variability > self.HIGH_SPLIT_VARIABILITY:
                candidates.append((RunSessionType.INTERVALS, 0.65))
                reasons.append("Duración corta con ritmo variable")

        # Long run
        if duration_min >= self.LONG_SESSION_MIN or distance_km >= self.LONG_SESSION_KM:
            if duration_min >= 120:
                score = 0.9
            elif duration_min >= 90:
                score = 0.8
            else:
                score = 0.6
            candidates.append((RunSessionType.LONG, score))
            reasons.append("Duración o distancia de largo")

        # Pace relative to the profile
        if easy_pace_ms and easy_pace_ms > 0 and threshold_pace_ms and threshold_pace_ms > 0:
            easy, th = easy_pace_ms, threshold_pace_ms
            if pace_ms <= easy * 0.92:
                candidates.append((RunSessionType.RECOVERY, 0.75))
                reasons.append("Ritmo más lento que rodaje cómodo")
            elif th * 0.95 <= pace_ms <= th * 1.08:
                candidates.append((RunSessionType.TEMPO, 0.7))
                reasons.append("Ritmo en zona de umbral")
            elif pace_ms > th * 1.1:
                if duration_min < 40:
                    candidates.append((RunSessionType.RACE, 0.65))
                    reasons.append("Ritmo muy por encima del umbral en sesión corta")
                else:
                    candidates.append((RunSessionType.INTERVALS, 0.5))
            elif easy < pace_ms < th * 0.92 and duration_min >= 45:
                candidates.append((RunSessionType.EASY, 0.7))
                reasons.append("Ritmo entre fácil y umbral, duración moderada")

        # Elevated heart rate at a slow pace
        if hr is not None and self.SLOW_PACE_SEC_PER_KM < pace_sec_per_km < 600 and hr >= self.ELEVATED_HR:
            candidates.append((RunSessionType.RECOVERY, 0.55))
            reasons.append("FC elevada para ritmo lento (posible fatiga)")

        # Fallback when nothing else fired
        if not candidates:
            if 25 <= duration_min <= 90:
                candidates.append((RunSessionType.EASY, 0.5))
                reasons.append("Duración típica de rodaje")
            elif duration_min < 20:
                candidates.append((RunSessionType.UNKNOWN, 0.3))
                reasons.append("Duración insuficiente para clasificar")

        if candidates:
            # Stable sort keeps rule order on ties
            session_type, confidence = sorted(candidates, key=lambda c: c[1], reverse=True)[0]
        else:
            session_type, confidence = RunSessionType.UNKNOWN, 0.0

        return RunClassification(
            type=session_type,
            confidence=confidence,
            reasons=reasons or ["Datos insuficientes para clasificar"],
        )

    @staticmethod
    def split_pace_variability(splits: Optional[Sequence[ActivitySplit]]) -> float:
        """CV of per-split pace (elapsed time / km). 0 with fewer than 3 splits."""
        if not splits or len(splits) < 3:
            return 0.0
        paces = split_paces(splits)
        if len(paces) < 2:
            return 0.0
        return coefficient_of_variation(paces)


_classifier: Optional[RunClassifier] = None


def get_run_classifier() -> RunClassifier:
    """Get the run classifier singleton."""
    global _classifier
    if _classifier is None:
        _classifier = RunClassifier()
    return _classifier
