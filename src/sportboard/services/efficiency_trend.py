"""
Efficiency trend.

Compares the median easy-run pace and mean heart rate of the most recent
Madrid week against the oldest week in a six-week window. A high fatigue
diagnosis softens a declining verdict, since a tired week is not a trend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..metrics.stats import mean, median
from ..models.activity import Activity
from .base import BaseService, in_range, usable_runs
from .fatigue import FatigueDiagnosis, FatigueLevel


class TrendDirection(str, Enum):
    """Direction of the efficiency trend."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass
class WeekEfficiency:
    """Per-week efficiency sample."""

    week_start: datetime
    median_pace_sec_per_km: float
    mean_heartrate: Optional[float]
    run_count: int


@dataclass
class EfficiencyTrend:
    """Trend verdict with confidence and reasons."""

    direction: TrendDirection
    confidence: float
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "confidence": round(self.confidence, 3),
            "reasons": self.reasons,
        }


class EfficiencyTrendService(BaseService):
    """Computes the six-week efficiency trend."""

    WINDOW_WEEKS = 6
    MIN_RUN_SECONDS = 15 * 60
    PACE_CHANGE_PCT = 3.0
    HR_RISE_BPM = 3.0
    FETCH_LIMIT = 200

    def compute(self, fatigue: Optional[FatigueDiagnosis] = None) -> EfficiencyTrend:
        """Compute the trend from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        return self.compute_from_activities(activities, fatigue)

    def weekly_samples(self, activities: List[Activity]) -> List[WeekEfficiency]:
        """Weeks with qualifying runs, most recent first."""
        runs = [
            a for a in usable_runs(activities, self._logger)
            if a.moving_time >= self.MIN_RUN_SECONDS and a.average_speed > 0
        ]
        current_week = self.calendar.start_of_week(self.now())

        samples = []
        for i in range(self.WINDOW_WEEKS):
            week_start = self.calendar.add_weeks(current_week, -i)
            week_end = self.calendar.add_days(week_start, 7)
            week_runs = [a for a in runs if in_range(a, week_start, week_end)]
            if not week_runs:
                continue
            hrs = [a.average_heartrate for a in week_runs if a.average_heartrate is not None]
            samples.append(WeekEfficiency(
                week_start=week_start,
                median_pace_sec_per_km=median([1000 / a.average_speed for a in week_runs]),
                mean_heartrate=mean(hrs),
                run_count=len(week_runs),
            ))
        return samples

    def compute_from_activities(
        self,
        activities: List[Activity],
        fatigue: Optional[FatigueDiagnosis] = None,
    ) -> EfficiencyTrend:
        """
        Compute the trend from a list of activities.

        Args:
            activities: Activities covering at least the last six weeks
            fatigue: Fatigue diagnosis used to soften a declining verdict

        Returns:
            EfficiencyTrend (stable with confidence 0 with fewer than 2 weeks)
        """
        samples = self.weekly_samples(activities)
        if len(samples) < 2:
            return EfficiencyTrend(
                direction=TrendDirection.STABLE,
                confidence=0.0,
                reasons=["Datos insuficientes para calcular tendencia"],
            )

        recent, older = samples[0], samples[-1]
        improving = 0
        declining = 0
        reasons: List[str] = []

        pace_change = (
            (recent.median_pace_sec_per_km - older.median_pace_sec_per_km)
            / older.median_pace_sec_per_km * 100
        )
        if pace_change < -self.PACE_CHANGE_PCT:
            improving += 2
            reasons.append("Ritmo en rodajes mejorando")
        elif pace_change > self.PACE_CHANGE_PCT:
            declining += 2
            reasons.append("Ritmo en rodajes más lento")

        if recent.mean_heartrate is not None and older.mean_heartrate is not None:
            if recent.mean_heartrate > older.mean_heartrate + self.HR_RISE_BPM:
                declining += 1
                reasons.append("FC media más alta recientemente")

        if fatigue is not None and fatigue.level == FatigueLevel.HIGH:
            declining = max(0, declining - 1)
            reasons.append("Fatiga alta puede explicar bajada puntual")

        if improving > declining:
            direction = TrendDirection.IMPROVING
        elif declining > improving:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE

        confidence = min(1.0, len(samples) / 4) * 0.8
        return EfficiencyTrend(
            direction=direction,
            confidence=confidence,
            reasons=reasons or ["Tendencia estable con los datos disponibles"],
        )
