"""
Silent alerts.

In-app notices shown only when they matter: load spike (injury risk),
persistent efficiency decline, high fatigue and a week with too little
easy volume. Never pushed; the caller decides when to show them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..models.activity import Activity, RunnerProfile
from .base import BaseService, easy_time_ratio, in_range, usable_runs
from .consistency import ConsistencyBreakdown
from .efficiency_trend import EfficiencyTrend, TrendDirection
from .fatigue import FatigueDiagnosis, FatigueLevel


class AlertSeverity(str, Enum):
    """Alert severity."""
    INFO = "info"
    WARNING = "warning"
    HIGH = "high"


@dataclass
class SilentAlert:
    """One in-app alert."""

    id: str
    title: str
    message: str
    severity: AlertSeverity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
        }


class SilentAlertsService(BaseService):
    """Evaluates the alert rules on top of the other analyzers' results."""

    RECENT_WEEKS_FOR_LOAD = 4
    LOAD_SPIKE_FACTOR = 1.5
    TREND_MIN_CONFIDENCE = 0.5
    EASY_RATIO_WEEK_BROKEN = 0.4
    FETCH_LIMIT = 200

    def evaluate(
        self,
        profile: Optional[RunnerProfile] = None,
        efficiency_trend: Optional[EfficiencyTrend] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
    ) -> List[SilentAlert]:
        """Evaluate alerts from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        return self.evaluate_from_activities(
            activities, profile, efficiency_trend, consistency, fatigue
        )

    def evaluate_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
        efficiency_trend: Optional[EfficiencyTrend] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
    ) -> List[SilentAlert]:
        """
        Evaluate every alert rule.

        Args:
            activities: Recent activity history
            profile: Runner profile (week_broken needs a valid one)
            efficiency_trend: Result of the efficiency trend
            consistency: Consistency breakdown (accepted for composition, no rule uses it yet)
            fatigue: Fatigue diagnosis

        Returns:
            Alerts in rule order, deduplicated by id
        """
        runs = usable_runs(activities, self._logger)
        candidates: List[Optional[SilentAlert]] = [self._load_spike(runs)]

        if (
            efficiency_trend is not None
            and efficiency_trend.direction == TrendDirection.DECLINING
            and efficiency_trend.confidence >= self.TREND_MIN_CONFIDENCE
        ):
            first_reason = efficiency_trend.reasons[0] if efficiency_trend.reasons else ""
            candidates.append(SilentAlert(
                id="trend_declining",
                title="Tendencia de eficiencia",
                message=f"La eficiencia va a la baja en las últimas semanas. {first_reason}",
                severity=AlertSeverity.WARNING,
            ))

        if fatigue is not None and fatigue.level == FatigueLevel.HIGH:
            candidates.append(SilentAlert(
                id="fatigue_high",
                title="Fatiga acumulada",
                message=f"{'. '.join(fatigue.causes[:2])}. {fatigue.action}",
                severity=AlertSeverity.WARNING,
            ))

        candidates.append(self._week_broken(runs, profile))

        alerts: List[SilentAlert] = []
        seen = set()
        for alert in candidates:
            if alert is None or alert.id in seen:
                continue
            seen.add(alert.id)
            alerts.append(alert)
        return alerts

    def _week_hours(self, runs: List[Activity], week_start) -> float:
        week_end = self.calendar.add_days(week_start, 7)
        return sum(a.moving_time for a in runs if in_range(a, week_start, week_end)) / 3600

    def _load_spike(self, runs: List[Activity]) -> Optional[SilentAlert]:
        week_start = self.calendar.start_of_week(self.now())
        current = self._week_hours(runs, week_start)
        previous = [
            self._week_hours(runs, self.calendar.add_weeks(week_start, -i))
            for i in range(1, self.RECENT_WEEKS_FOR_LOAD + 1)
        ]
        baseline = sum(previous) / len(previous)
        if baseline > 0 and current > baseline * self.LOAD_SPIKE_FACTOR:
            return SilentAlert(
                id="load_spike",
                title="Carga elevada",
                message=(
                    "Esta semana la carga es notablemente mayor que tu media reciente. "
                    "Considera no subir más el volumen."
                ),
                severity=AlertSeverity.WARNING,
            )
        return None

    def _week_broken(
        self,
        runs: List[Activity],
        profile: Optional[RunnerProfile],
    ) -> Optional[SilentAlert]:
        if profile is None or not profile.is_valid:
            return None
        week_start, week_end = self.calendar.week_range(self.now())
        week_runs = [a for a in runs if in_range(a, week_start, week_end)]
        if len(week_runs) < 2:
            return None
        if sum(a.moving_time for a in week_runs) <= 0:
            return None
        ratio = easy_time_ratio(week_runs, profile.easy_pace_ms, factor=1.02)
        if ratio < self.EASY_RATIO_WEEK_BROKEN:
            return SilentAlert(
                id="week_broken",
                title="Semana con poco fácil",
                message=(
                    "Esta semana hay poca proporción de volumen fácil. "
                    "Prioriza rodajes suaves en los próximos días."
                ),
                severity=AlertSeverity.INFO,
            )
        return None
