"""
Suspicious-peak detector.

Flags improvements that come too fast to be real adaptation: the median
pace of the current Madrid week against the week two weeks back. The
message stays calm; rest or conditions usually explain such jumps.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..metrics.stats import median
from ..models.activity import Activity, RunnerProfile
from .base import BaseService, in_range, usable_runs


@dataclass
class SuspiciousPeakResult:
    """Outcome of the suspicious-peak check."""

    detected: bool
    message: str
    improvement_sec_per_km: Optional[float]
    window_weeks: int

    def to_dict(self) -> dict:
        return {
            "detected": self.detected,
            "message": self.message,
            "improvement_sec_per_km": self.improvement_sec_per_km,
            "window_weeks": self.window_weeks,
        }


class SuspiciousPeakDetector(BaseService):
    """Detects pace improvements that are too fast to be adaptation."""

    WINDOW_WEEKS = 2
    IMPROVEMENT_THRESHOLD_SEC_PER_KM = 20.0
    MIN_ACTIVITIES_PER_WINDOW = 2
    MIN_RUN_SECONDS = 20 * 60
    FETCH_LIMIT = 100

    def evaluate(self, profile: Optional[RunnerProfile] = None) -> SuspiciousPeakResult:
        """Evaluate from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        return self.evaluate_from_activities(activities, profile)

    def evaluate_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
    ) -> SuspiciousPeakResult:
        runs = [
            a for a in usable_runs(activities, self._logger)
            if a.moving_time >= self.MIN_RUN_SECONDS and a.average_speed > 0
        ]
        current_start, current_end = self.calendar.week_range(self.now())
        previous_start = self.calendar.add_weeks(current_start, -1)
        two_weeks_ago_start = self.calendar.add_weeks(current_start, -2)

        in_current = [a for a in runs if in_range(a, current_start, current_end)]
        in_old = [a for a in runs if in_range(a, two_weeks_ago_start, previous_start)]

        if len(in_current) < self.MIN_ACTIVITIES_PER_WINDOW or len(in_old) < self.MIN_ACTIVITIES_PER_WINDOW:
            return self._empty()

        current_pace = median([1000 / a.average_speed for a in in_current])
        old_pace = median([1000 / a.average_speed for a in in_old])
        if current_pace is None or old_pace is None or old_pace <= 0:
            return self._empty()

        improvement = old_pace - current_pace
        if improvement >= self.IMPROVEMENT_THRESHOLD_SEC_PER_KM:
            return SuspiciousPeakResult(
                detected=True,
                message=(
                    f"Has mejorado unos {improvement:.0f} s/km en 2 semanas. Puede ser efecto "
                    "del descanso o de las condiciones, no solo adaptación."
                ),
                improvement_sec_per_km=improvement,
                window_weeks=self.WINDOW_WEEKS,
            )
        return SuspiciousPeakResult(
            detected=False,
            message="",
            improvement_sec_per_km=improvement,
            window_weeks=self.WINDOW_WEEKS,
        )

    def _empty(self) -> SuspiciousPeakResult:
        return SuspiciousPeakResult(
            detected=False,
            message="",
            improvement_sec_per_km=None,
            window_weeks=self.WINDOW_WEEKS,
        )
