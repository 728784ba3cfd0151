"""
What-if simulator.

Qualitative answer to "what happens if I change days per week, volume or
hard sessions": impact on consistency, estimated risk and the expected trend.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

from ..models.activity import Activity, RunnerProfile
from .base import BaseService, in_range, is_hard_session, usable_runs


@dataclass
class SimulatorInput:
    """Scenario to simulate."""

    days_per_week: int
    volume_change_percent: float  # -10 = ten percent less volume
    hard_sessions_per_week: int


@dataclass
class SimulatorResult:
    """Qualitative outcome of a scenario."""

    consistency_impact: str  # mejor, igual, peor
    risk_level: str          # bajo, medio, alto
    trend_expectation: str   # mejorando, estable, empeorando
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "consistency_impact": self.consistency_impact,
            "risk_level": self.risk_level,
            "trend_expectation": self.trend_expectation,
            "reasons": self.reasons,
        }


class CurrentMetrics(NamedTuple):
    days_per_week: int
    volume_hours_per_week: float
    hard_sessions_per_week: int


def simulate(
    current_days_per_week: int,
    current_volume_hours_per_week: float,
    current_hard_sessions_per_week: int,
    scenario: SimulatorInput,
) -> SimulatorResult:
    """
    Simulate a change in training pattern.

    Args:
        current_days_per_week: Training days this week
        current_volume_hours_per_week: Hours this week
        current_hard_sessions_per_week: Hard sessions this week
        scenario: Proposed days, volume change and hard sessions

    Returns:
        SimulatorResult with at least one reason
    """
    new_days = scenario.days_per_week
    new_volume = current_volume_hours_per_week * (1 + scenario.volume_change_percent / 100)
    new_hard = scenario.hard_sessions_per_week

    reasons: List[str] = []
    consistency_impact = "igual"
    risk_level = "bajo"
    trend_expectation = "estable"

    if new_days > current_days_per_week:
        consistency_impact = "mejor"
        reasons.append("Más días de entreno suele mejorar la consistencia.")
    elif new_days < current_days_per_week and new_days < 3:
        consistency_impact = "peor"
        reasons.append("Menos de 3 días puede bajar la consistencia.")

    if new_volume > current_volume_hours_per_week * 1.2:
        risk_level = "medio"
        reasons.append("Subir mucho el volumen aumenta el riesgo de lesión.")
    if new_hard >= 3 and new_days <= 4:
        risk_level = "alto" if risk_level == "medio" else "medio"
        reasons.append("Varias sesiones duras con pocos días puede acumular fatiga.")
    if new_hard > new_days - 1:
        risk_level = "alto"
        reasons.append("Demasiadas sesiones exigentes respecto a días disponibles.")

    if risk_level == "alto":
        trend_expectation = "empeorando"
    elif consistency_impact == "mejor" and risk_level == "bajo":
        trend_expectation = "mejorando"

    if not reasons:
        reasons.append("Escenario razonable. Sin cambios drásticos.")

    return SimulatorResult(
        consistency_impact=consistency_impact,
        risk_level=risk_level,
        trend_expectation=trend_expectation,
        reasons=reasons,
    )


class SimulatorService(BaseService):
    """Reads the current week's pattern and runs scenarios against it."""

    FETCH_LIMIT = 100

    def current_metrics(self, profile: Optional[RunnerProfile] = None) -> CurrentMetrics:
        """Distinct training days, hours and hard sessions in the current Madrid week."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        if profile is None:
            profile = self.repository.fetch_profile()
        return self.current_metrics_from_activities(activities, profile)

    def current_metrics_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
    ) -> CurrentMetrics:
        week_start, week_end = self.calendar.week_range(self.now())
        in_week = [a for a in usable_runs(activities, self._logger) if in_range(a, week_start, week_end)]
        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        return CurrentMetrics(
            days_per_week=len({self.calendar.start_of_day(a.start_date) for a in in_week}),
            volume_hours_per_week=sum(a.moving_time for a in in_week) / 3600,
            hard_sessions_per_week=sum(1 for a in in_week if is_hard_session(a, easy_pace_ms)),
        )

    def simulate_from_current(
        self,
        scenario: SimulatorInput,
        profile: Optional[RunnerProfile] = None,
    ) -> SimulatorResult:
        current = self.current_metrics(profile)
        return simulate(
            current.days_per_week,
            current.volume_hours_per_week,
            current.hard_sessions_per_week,
            scenario,
        )
