"""
Bad-run detector.

Flags runs that were meant to be comfortable but turned out demanding:
heart rate too high for the pace, erratic pace between kilometers, strong
heart-rate drift and poor recovery compared with the previous day.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..metrics.stats import coefficient_of_variation, mean, split_paces
from ..models.activity import Activity, ActivitySplit, RunnerProfile
from .base import BaseService
from .data_quality import DataQuality


class BadRunSeverity(str, Enum):
    """Severity of a bad-run insight."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def display_name(self) -> str:
        return {
            BadRunSeverity.LOW: "Leve",
            BadRunSeverity.MEDIUM: "Moderada",
            BadRunSeverity.HIGH: "Alta",
        }[self]


ACTIONS = {
    BadRunSeverity.HIGH: "Considera un día de descanso o rodaje muy suave mañana.",
    BadRunSeverity.MEDIUM: "Prioriza recuperación: próximo entreno fácil.",
    BadRunSeverity.LOW: "",
}

SUMMARY = "Este rodaje fue más exigente de lo esperado. Probable fatiga acumulada."


@dataclass
class BadRunInsight:
    """Severity, causes and suggested action for one run."""

    severity: BadRunSeverity
    causes: List[str] = field(default_factory=list)
    suggested_action: str = ""
    summary: str = ""

    @property
    def has_issue(self) -> bool:
        return self.severity != BadRunSeverity.LOW or bool(self.causes)

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "display_name": self.severity.display_name,
            "causes": self.causes,
            "suggested_action": self.suggested_action,
            "summary": self.summary,
            "has_issue": self.has_issue,
        }


class BadRunDetector(BaseService):
    """Per-activity bad-run diagnosis."""

    ESTIMATED_MAX_HR = 190.0
    HR_ABOVE_EXPECTED_MARGIN = 0.08
    DRIFT_THRESHOLD_BPM = 8
    ERRATIC_PACE_CV = 0.12

    def evaluate(
        self,
        activity: Activity,
        splits: Optional[Sequence[ActivitySplit]] = None,
        profile: Optional[RunnerProfile] = None,
        previous_day_activity: Optional[Activity] = None,
    ) -> BadRunInsight:
        """
        Evaluate one activity.

        Args:
            activity: Activity to diagnose (non-runs get an empty low insight)
            splits: Splits to use instead of the activity's own
            profile: Runner profile for the expected heart rate
            previous_day_activity: Latest activity of the previous calendar day

        Returns:
            BadRunInsight
        """
        quality = DataQuality.evaluate(activity, splits)
        if not quality.is_run:
            return BadRunInsight(severity=BadRunSeverity.LOW)

        splits_to_use = list(splits) if splits is not None else activity.sorted_splits
        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        causes: List[str] = []
        score = 0

        # Heart rate too high for the pace
        hr = activity.average_heartrate
        if quality.can_use_heartrate_metrics and hr is not None and easy_pace_ms > 0:
            expected_factor = 0.85 + 0.15 * (activity.average_speed / easy_pace_ms)
            expected_hr = self.ESTIMATED_MAX_HR * expected_factor * 0.75
            if hr > expected_hr * (1 + self.HR_ABOVE_EXPECTED_MARGIN):
                causes.append("FC más alta de lo esperado para este ritmo")
                score += 2

        # Erratic pace between splits
        if quality.can_use_split_metrics and splits_to_use and len(splits_to_use) >= 3:
            paces = split_paces(splits_to_use)
            if len(paces) >= 3 and coefficient_of_variation(paces) > self.ERRATIC_PACE_CV:
                causes.append("Ritmo muy variable entre kilómetros")
                score += 1

        # Drift between halves
        if splits_to_use and len(splits_to_use) >= 4:
            drift = self.heartrate_drift(splits_to_use)
            if drift is not None and drift > self.DRIFT_THRESHOLD_BPM:
                causes.append("Deriva de FC alta (segunda mitad más exigente)")
                score += 2

        # Recovery against the previous day
        prev = previous_day_activity
        if prev is not None and prev.average_speed > 0 and activity.average_speed > 0:
            prev_pace = 1000 / prev.average_speed
            today_pace = 1000 / activity.average_speed
            if prev.average_heartrate is not None and hr is not None:
                if today_pace >= prev_pace * 0.98 and hr > prev.average_heartrate + 5:
                    causes.append("FC elevada respecto al entrenamiento de ayer")
                    score += 2

        if score >= 4:
            severity = BadRunSeverity.HIGH
        elif score >= 2:
            severity = BadRunSeverity.MEDIUM
        else:
            severity = BadRunSeverity.LOW

        return BadRunInsight(
            severity=severity,
            causes=causes,
            suggested_action=ACTIONS[severity],
            summary=SUMMARY if causes else "",
        )

    @staticmethod
    def heartrate_drift(splits: Sequence[ActivitySplit]) -> Optional[float]:
        """Mean split HR of the second half minus the first half, or None."""
        mid = len(splits) // 2
        first = mean([s.average_heartrate for s in splits[:mid] if s.average_heartrate is not None])
        second = mean([s.average_heartrate for s in splits[mid:] if s.average_heartrate is not None])
        if first is None or second is None:
            return None
        return second - first

    def find_previous_day_activity(self, activity: Activity) -> Optional[Activity]:
        """Most recent other activity on the previous Madrid calendar day."""
        day_start = self.calendar.start_of_day(activity.start_date)
        previous_start = self.calendar.add_days(day_start, -1)
        candidates = self.repository.fetch_activities_between(previous_start, day_start, order="desc")
        for candidate in candidates:
            if candidate.id != activity.id:
                return candidate
        return None
