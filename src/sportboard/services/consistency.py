"""
Consistency score.

Measures regularity, not volume: consecutive weeks with running, long gaps
between sessions, week-to-week load variation and the easy/hard balance
over the last 12 Madrid weeks. Output is a 0-100 score with the reasons
behind each adjustment.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..metrics.stats import coefficient_of_variation
from ..models.activity import Activity, RunnerProfile
from .base import BaseService, easy_time_ratio, usable_runs


@dataclass
class ConsistencyBreakdown:
    """Explainable components of the consistency score."""

    consecutive_weeks: int
    gaps_over_4_days: int
    weekly_load_variation: float  # CV of weekly hours (0 = stable)
    easy_hard_deviation: float    # |easy ratio - target|
    score: int                    # 0-100
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "consecutive_weeks": self.consecutive_weeks,
            "gaps_over_4_days": self.gaps_over_4_days,
            "weekly_load_variation": round(self.weekly_load_variation, 3),
            "easy_hard_deviation": round(self.easy_hard_deviation, 3),
            "score": self.score,
            "reasons": self.reasons,
        }


class ConsistencyService(BaseService):
    """Computes the consistency breakdown for running activities."""

    ANALYSIS_WEEKS = 12
    GAP_THRESHOLD_DAYS = 4
    TARGET_EASY_RATIO = 0.75
    BASE_SCORE = 70
    FETCH_LIMIT = 500

    def compute(self, profile: Optional[RunnerProfile] = None) -> ConsistencyBreakdown:
        """Compute consistency from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="asc")
        return self.compute_from_activities(activities, profile)

    def compute_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
    ) -> ConsistencyBreakdown:
        """
        Compute consistency from a list of activities.

        Args:
            activities: Activities (non-runs and invalid records are ignored)
            profile: Runner profile for the easy-pace reference

        Returns:
            ConsistencyBreakdown with score clamped to [0, 100]
        """
        calendar = self.calendar
        week_start = calendar.start_of_week(self.now())
        window_start = calendar.add_weeks(week_start, -self.ANALYSIS_WEEKS)

        runs = sorted(
            (a for a in usable_runs(activities, self._logger) if a.start_date >= window_start),
            key=lambda a: a.start_date,
        )

        week_loads: Dict[datetime, float] = defaultdict(float)
        gaps = 0
        for i, act in enumerate(runs):
            week_loads[calendar.start_of_week(act.start_date)] += act.moving_time / 3600
            if i > 0:
                days = calendar.day_difference(runs[i - 1].start_date, act.start_date)
                if days > self.GAP_THRESHOLD_DAYS:
                    gaps += 1

        consecutive_weeks = self._streak(set(week_loads), week_start)
        variation = coefficient_of_variation(list(week_loads.values()))

        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        easy_ratio = easy_time_ratio(runs, easy_pace_ms, factor=1.02, default=0.5)
        deviation = abs(easy_ratio - self.TARGET_EASY_RATIO)

        score = self.BASE_SCORE
        reasons: List[str] = []

        if consecutive_weeks >= 4:
            score += min(15, consecutive_weeks)
            reasons.append(f"Racha: {consecutive_weeks} semanas")
        elif consecutive_weeks > 0:
            score += consecutive_weeks
            reasons.append(f"Racha: {consecutive_weeks} semanas")
        else:
            score -= 20
            reasons.append("Sin racha reciente")

        if gaps == 0:
            score += 5
            reasons.append("Sin huecos largos sin entrenar")
        else:
            score -= min(15, gaps * 5)
            reasons.append(f"{gaps} huecos de más de {self.GAP_THRESHOLD_DAYS} días")

        if variation < 0.4:
            score += 5
            reasons.append("Carga semanal estable")
        elif variation > 0.8:
            score -= 10
            reasons.append("Carga semanal muy variable")

        if deviation <= 0.15:
            score += 5
            reasons.append("Buena proporción fácil/duro")
        elif deviation > 0.3:
            score -= 10
            reasons.append("Proporción fácil/duro desviada")

        return ConsistencyBreakdown(
            consecutive_weeks=consecutive_weeks,
            gaps_over_4_days=gaps,
            weekly_load_variation=variation,
            easy_hard_deviation=deviation,
            score=max(0, min(100, score)),
            reasons=reasons,
        )

    def _streak(self, weeks_with_activity: set, week_start: datetime) -> int:
        """Weeks with activity walking back from this week, or from the last active one."""
        if not weeks_with_activity:
            return 0
        current = week_start if week_start in weeks_with_activity else max(weeks_with_activity)
        streak = 0
        for _ in range(self.ANALYSIS_WEEKS):
            if current not in weeks_with_activity:
                break
            streak += 1
            current = self.calendar.add_weeks(current, -1)
        return streak
