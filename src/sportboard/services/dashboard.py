"""
Dashboard stats and the intelligence engine facade.

``IntelligenceEngine`` runs every analyzer against one repository with a
shared clock and calendar. Each analyzer is isolated: a repository failure
in one of them degrades that result to its empty value and the rest still
run.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from ..clock import Clock, MadridCalendar
from ..exceptions import RepositoryError
from ..metrics.stats import mean
from ..models.activity import Activity, RunnerProfile
from .bad_run import BadRunDetector, BadRunInsight
from .base import ActivityRepository, BaseService, in_range
from .consistency import ConsistencyBreakdown, ConsistencyService
from .data_quality import DataQuality
from .efficiency_trend import EfficiencyTrend, EfficiencyTrendService
from .fatigue import FatigueDiagnosis, FatigueService
from .next_workout import NextWorkoutService, NextWorkoutSuggestion
from .run_classifier import RunClassification, get_run_classifier
from .runner_profile import RunnerProfileService
from .silent_alerts import SilentAlert, SilentAlertsService
from .simulator import SimulatorService
from .suspicious_peak import SuspiciousPeakDetector, SuspiciousPeakResult
from .week_comparator import WeekComparatorService
from .weekly_narrative import WeeklyNarrativeService

T = TypeVar("T")

RECENT_ACTIVITIES = 5


@dataclass
class PeriodTotals:
    """Count, distance (m) and moving time (s) over a period."""

    activities: int = 0
    distance: float = 0.0
    moving_time: int = 0

    @classmethod
    def of(cls, activities: List[Activity]) -> "PeriodTotals":
        return cls(
            activities=len(activities),
            distance=sum(a.distance for a in activities),
            moving_time=sum(a.moving_time for a in activities),
        )

    def to_dict(self) -> dict:
        return {
            "activities": self.activities,
            "distance_km": round(self.distance / 1000, 2),
            "moving_time_s": self.moving_time,
        }


@dataclass
class DashboardStats:
    """Totals and recent activity for the dashboard."""

    total_activities: int = 0
    total_distance: float = 0.0
    total_time: int = 0
    total_elevation: float = 0.0
    average_heartrate: Optional[float] = None
    this_week: PeriodTotals = field(default_factory=PeriodTotals)
    this_month: PeriodTotals = field(default_factory=PeriodTotals)
    sport_type_counts: Dict[str, int] = field(default_factory=dict)
    recent_activities: List[Activity] = field(default_factory=list)

    @property
    def sorted_sport_types(self) -> List[tuple]:
        """Sport tags by descending count."""
        return sorted(self.sport_type_counts.items(), key=lambda item: (-item[1], item[0]))

    def to_dict(self) -> dict:
        return {
            "total_activities": self.total_activities,
            "total_distance_km": round(self.total_distance / 1000, 2),
            "total_time_s": self.total_time,
            "total_elevation_m": round(self.total_elevation, 1),
            "average_heartrate": self.average_heartrate,
            "this_week": self.this_week.to_dict(),
            "this_month": self.this_month.to_dict(),
            "sport_type_counts": dict(self.sorted_sport_types),
            "recent_activities": [
                {"id": a.id, "name": a.name, "sport_type": a.sport_type, "start_date": a.start_date.isoformat()}
                for a in self.recent_activities
            ],
        }


class DashboardStatsService(BaseService):
    """Computes the dashboard totals."""

    def compute(self, sport_filter: Optional[str] = None) -> DashboardStats:
        """Stats from the repository (RepositoryError propagates)."""
        everything = self.repository.fetch_all_activities(order="desc")
        return self.compute_from_activities(everything, sport_filter)

    def compute_from_activities(
        self,
        activities: List[Activity],
        sport_filter: Optional[str] = None,
    ) -> DashboardStats:
        """
        Compute dashboard totals.

        Args:
            activities: Every stored activity, most recent first
            sport_filter: Restrict totals and recents to one sport tag

        Returns:
            DashboardStats (the sport histogram always covers every activity)
        """
        selected = [a for a in activities if sport_filter is None or a.sport_type == sport_filter]
        now = self.now()
        week_start, week_end = self.calendar.week_range(now)
        month_start = self.calendar.start_of_month(now)

        this_week = [a for a in selected if a.is_run and in_range(a, week_start, week_end)]
        this_month = [a for a in selected if a.start_date >= month_start]
        self._logger.debug(
            f"Week {week_start.isoformat()}..{week_end.isoformat()} holds {len(this_week)} runs"
        )

        return DashboardStats(
            total_activities=len(selected),
            total_distance=sum(a.distance for a in selected),
            total_time=sum(a.moving_time for a in selected),
            total_elevation=sum(a.total_elevation_gain for a in selected),
            average_heartrate=mean([a.average_heartrate for a in selected if a.average_heartrate is not None]),
            this_week=PeriodTotals.of(this_week),
            this_month=PeriodTotals.of(this_month),
            sport_type_counts=dict(Counter(a.sport_type for a in activities)),
            recent_activities=selected[:RECENT_ACTIVITIES],
        )


@dataclass
class IntelligenceReport:
    """Every analyzer result for the dashboard."""

    profile: Optional[RunnerProfile] = None
    consistency: Optional[ConsistencyBreakdown] = None
    fatigue: Optional[FatigueDiagnosis] = None
    efficiency_trend: Optional[EfficiencyTrend] = None
    weekly_narrative: str = ""
    next_workout: Optional[NextWorkoutSuggestion] = None
    silent_alerts: List[SilentAlert] = field(default_factory=list)
    suspicious_peak: Optional[SuspiciousPeakResult] = None

    def to_dict(self) -> dict:
        def dump(value: Any) -> Any:
            return value.to_dict() if value is not None else None

        return {
            "profile": dump(self.profile),
            "consistency": dump(self.consistency),
            "fatigue": dump(self.fatigue),
            "efficiency_trend": dump(self.efficiency_trend),
            "weekly_narrative": self.weekly_narrative,
            "next_workout": dump(self.next_workout),
            "silent_alerts": [a.to_dict() for a in self.silent_alerts],
            "suspicious_peak": dump(self.suspicious_peak),
        }


@dataclass
class ActivityInsights:
    """Per-activity gate, classification and bad-run diagnosis."""

    activity: Activity
    quality: DataQuality
    classification: RunClassification
    bad_run: BadRunInsight

    def to_dict(self) -> dict:
        return {
            "activity_id": self.activity.id,
            "quality": self.quality.to_dict(),
            "classification": self.classification.to_dict(),
            "bad_run": self.bad_run.to_dict(),
        }


class IntelligenceEngine:
    """
    Facade over all analyzers.

    Services raise RepositoryError; the engine catches it per analyzer,
    logs a warning and substitutes the empty result.
    """

    def __init__(
        self,
        repository: ActivityRepository,
        clock: Optional[Clock] = None,
        calendar: Optional[MadridCalendar] = None,
        logger: Optional[logging.Logger] = None,
        recompute_interval_days: Optional[int] = None,
    ):
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        deps = dict(repository=repository, clock=clock, calendar=calendar)
        self.profiles = RunnerProfileService(recompute_interval_days=recompute_interval_days, **deps)
        self.consistency = ConsistencyService(**deps)
        self.fatigue = FatigueService(**deps)
        self.efficiency = EfficiencyTrendService(**deps)
        self.narrative = WeeklyNarrativeService(**deps)
        self.next_workout = NextWorkoutService(**deps)
        self.alerts = SilentAlertsService(**deps)
        self.suspicious_peak = SuspiciousPeakDetector(**deps)
        self.bad_run = BadRunDetector(**deps)
        self.comparator = WeekComparatorService(**deps)
        self.simulator = SimulatorService(**deps)
        self.stats = DashboardStatsService(**deps)
        self._repository = repository

    def _safely(self, name: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except RepositoryError as e:
            self._logger.warning(f"{name} unavailable: {e.message}")
            return default

    def load_intelligence(self) -> IntelligenceReport:
        """Run every analyzer in dependency order."""
        report = IntelligenceReport()
        report.profile = self._safely("Runner profile", self.profiles.ensure_profile, None)
        profile = report.profile

        report.consistency = self._safely(
            "Consistency", lambda: self.consistency.compute(profile), None
        )
        report.fatigue = self._safely(
            "Fatigue", lambda: self.fatigue.compute(profile), None
        )
        report.efficiency_trend = self._safely(
            "Efficiency trend", lambda: self.efficiency.compute(report.fatigue), None
        )
        direction = report.efficiency_trend.direction if report.efficiency_trend else None
        report.weekly_narrative = self._safely(
            "Weekly narrative",
            lambda: self.narrative.generate(profile, report.consistency, report.fatigue, direction),
            "",
        )
        report.next_workout = self._safely(
            "Next workout",
            lambda: self.next_workout.suggest(profile, report.fatigue, report.consistency),
            None,
        )
        report.silent_alerts = self._safely(
            "Silent alerts",
            lambda: self.alerts.evaluate(profile, report.efficiency_trend, report.consistency, report.fatigue),
            [],
        )
        report.suspicious_peak = self._safely(
            "Suspicious peak", lambda: self.suspicious_peak.evaluate(profile), None
        )
        return report

    def dashboard_stats(self, sport_filter: Optional[str] = None) -> Optional[DashboardStats]:
        return self._safely("Dashboard stats", lambda: self.stats.compute(sport_filter), None)

    def activity_insights(self, activity_id: int) -> Optional[ActivityInsights]:
        """Gate, classify and diagnose one stored activity (None when unavailable)."""
        activity = self._safely(
            f"Activity {activity_id}", lambda: self._repository.get_activity(activity_id), None
        )
        if activity is None:
            return None

        profile = self._safely("Runner profile", self.profiles.fetch_profile, None)
        easy = profile.easy_pace_ms if profile else None
        threshold = profile.threshold_pace_ms if profile else None
        classification = get_run_classifier().classify(
            activity, easy_pace_ms=easy, threshold_pace_ms=threshold
        )
        previous = self._safely(
            "Previous-day activity", lambda: self.bad_run.find_previous_day_activity(activity), None
        )
        return ActivityInsights(
            activity=activity,
            quality=DataQuality.evaluate(activity),
            classification=classification,
            bad_run=self.bad_run.evaluate(activity, profile=profile, previous_day_activity=previous),
        )
