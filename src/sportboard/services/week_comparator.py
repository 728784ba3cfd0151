"""
Week comparator.

Compares weeks by structure (volume, number of sessions, easy/hard
distribution) instead of by calendar position.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..metrics.stats import mean
from ..models.activity import Activity, RunnerProfile
from .base import BaseService, easy_time_ratio, in_range, usable_runs


class WeekEquivalenceCriterion(str, Enum):
    """How a reference week is chosen."""
    SIMILAR_VOLUME = "similar_volume"          # +/-15% km
    SAME_SESSION_COUNT = "same_session_count"
    SIMILAR_EASY_RATIO = "similar_easy_ratio"  # +/-0.12


@dataclass
class WeekSummary:
    """Aggregates of the runs in one Madrid week."""

    week_start: datetime
    total_distance_km: float
    total_time_hours: float
    session_count: int
    easy_ratio: float
    average_pace_sec_per_km: Optional[float] = None
    average_heartrate: Optional[float] = None

    @property
    def formatted_distance(self) -> str:
        return f"{self.total_distance_km:.1f} km"

    @property
    def formatted_time(self) -> str:
        return f"{self.total_time_hours:.1f} h"

    def to_dict(self) -> dict:
        return {
            "week_start": self.week_start.isoformat(),
            "total_distance_km": round(self.total_distance_km, 2),
            "total_time_hours": round(self.total_time_hours, 2),
            "session_count": self.session_count,
            "easy_ratio": round(self.easy_ratio, 3),
            "average_pace_sec_per_km": self.average_pace_sec_per_km,
            "average_heartrate": self.average_heartrate,
        }


@dataclass
class WeekComparison:
    """Current week against a reference week."""

    current: WeekSummary
    reference: WeekSummary
    criterion: WeekEquivalenceCriterion
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "current": self.current.to_dict(),
            "reference": self.reference.to_dict(),
            "criterion": self.criterion.value,
            "insights": self.insights,
        }


class WeekComparatorService(BaseService):
    """Builds week summaries and compares equivalent weeks."""

    VOLUME_TOLERANCE = 0.15
    EASY_RATIO_TOLERANCE = 0.12
    MAX_WEEKS_TO_SEARCH = 52
    FETCH_LIMIT = 500

    def week_summary(
        self,
        for_date: datetime,
        activities: Sequence[Activity],
        profile: Optional[RunnerProfile] = None,
    ) -> WeekSummary:
        """Summary of the runs in the Madrid week containing ``for_date``."""
        week_start, week_end = self.calendar.week_range(for_date)
        runs = [a for a in usable_runs(activities, self._logger) if in_range(a, week_start, week_end)]

        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        paces = [1000 / a.average_speed for a in runs if a.average_speed > 0]
        heartrates = [a.average_heartrate for a in runs if a.average_heartrate is not None]

        return WeekSummary(
            week_start=week_start,
            total_distance_km=sum(a.distance for a in runs) / 1000,
            total_time_hours=sum(a.moving_time for a in runs) / 3600,
            session_count=len(runs),
            easy_ratio=easy_time_ratio(runs, easy_pace_ms, factor=1.02, default=0.5),
            average_pace_sec_per_km=mean(paces),
            average_heartrate=mean(heartrates),
        )

    def find_equivalent_week(
        self,
        current: WeekSummary,
        past: Sequence[WeekSummary],
        criterion: WeekEquivalenceCriterion,
    ) -> Optional[WeekSummary]:
        """First past week matching ``criterion``, in the order given."""
        if criterion == WeekEquivalenceCriterion.SIMILAR_VOLUME:
            target = current.total_distance_km
            if target <= 0:
                return None
            low, high = 1 - self.VOLUME_TOLERANCE, 1 + self.VOLUME_TOLERANCE
            for summary in past:
                if summary.total_distance_km > 0 and low <= summary.total_distance_km / target <= high:
                    return summary
            return None
        if criterion == WeekEquivalenceCriterion.SAME_SESSION_COUNT:
            return next((s for s in past if s.session_count == current.session_count), None)
        return next(
            (s for s in past if abs(s.easy_ratio - current.easy_ratio) <= self.EASY_RATIO_TOLERANCE),
            None,
        )

    def compare(self, current: WeekSummary, reference: WeekSummary) -> List[str]:
        """Human-readable differences between two weeks."""
        insights: List[str] = []

        if reference.total_distance_km > 0:
            diff = (current.total_distance_km - reference.total_distance_km) / reference.total_distance_km * 100
            if abs(diff) >= 10:
                direction = "mayor" if diff > 0 else "menor"
                insights.append(
                    f"Volumen {abs(diff):.0f}% {direction} respecto a la semana de referencia."
                )

        if current.session_count != reference.session_count:
            insights.append(
                f"Sesiones: {current.session_count} vs {reference.session_count} en la semana de referencia."
            )

        cp, rp = current.average_pace_sec_per_km, reference.average_pace_sec_per_km
        if cp is not None and rp is not None and rp > 0:
            diff_sec = cp - rp
            if abs(diff_sec) >= 10:
                direction = "más lento" if diff_sec > 0 else "más rápido"
                insights.append(f"Ritmo medio {direction} {abs(diff_sec):.0f} s/km.")

        if abs(current.easy_ratio - reference.easy_ratio) >= 0.1:
            insights.append(
                f"Proporción fácil: {current.easy_ratio * 100:.0f}% vs {reference.easy_ratio * 100:.0f}%."
            )

        return insights

    def fetch_past_week_summaries(
        self,
        profile: Optional[RunnerProfile] = None,
        up_to_weeks: int = MAX_WEEKS_TO_SEARCH,
    ) -> List[WeekSummary]:
        """Summaries of the weeks with running, most recent first."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="asc")
        return self.past_week_summaries(activities, profile, up_to_weeks)

    def past_week_summaries(
        self,
        activities: Sequence[Activity],
        profile: Optional[RunnerProfile] = None,
        up_to_weeks: int = MAX_WEEKS_TO_SEARCH,
    ) -> List[WeekSummary]:
        runs = usable_runs(activities, self._logger)
        by_week: Dict[datetime, int] = defaultdict(int)
        for act in runs:
            by_week[self.calendar.start_of_week(act.start_date)] += 1
        weeks = sorted(by_week, reverse=True)[:up_to_weeks]
        return [self.week_summary(week_start, runs, profile) for week_start in weeks]

    def compare_current_week(
        self,
        criterion: WeekEquivalenceCriterion,
        profile: Optional[RunnerProfile] = None,
    ) -> Optional[WeekComparison]:
        """
        Compare the current week against the most recent equivalent past week.

        Returns None when no past week matches the criterion.
        """
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="asc")
        now = self.now()
        current = self.week_summary(now, activities, profile)
        past = [
            s for s in self.past_week_summaries(activities, profile)
            if s.week_start < current.week_start
        ]
        reference = self.find_equivalent_week(current, past, criterion)
        if reference is None:
            return None
        return WeekComparison(
            current=current,
            reference=reference,
            criterion=criterion,
            insights=self.compare(current, reference),
        )
