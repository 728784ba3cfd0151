"""
Accumulated fatigue diagnosis.

Looks at the last 14 days: consecutive training days, load against the
athlete's usual weekly load, share of demanding sessions, easy volume and
recent post-activity reflections. Each rule that fires adds to a score and
contributes a cause; the score maps to a level with a fixed action.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..metrics.stats import median
from ..models.activity import Activity, PostActivityReflection, RunnerProfile
from .base import BaseService, easy_time_ratio, usable_runs


class FatigueLevel(str, Enum):
    """Fatigue level."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def display_name(self) -> str:
        return {
            FatigueLevel.LOW: "Baja",
            FatigueLevel.MEDIUM: "Moderada",
            FatigueLevel.HIGH: "Alta",
        }[self]


ACTIONS = {
    FatigueLevel.HIGH: "Descanso o solo rodaje muy suave. Evita sesiones duras hasta que baje la fatiga.",
    FatigueLevel.MEDIUM: "Prioriza rodajes fáciles y evita acumular días seguidos sin descanso.",
    FatigueLevel.LOW: "Mantén la progresión sin forzar. Incluye suficiente volumen fácil.",
}

NO_SIGNALS_CAUSE = "Sin señales claras de fatiga acumulada"


@dataclass
class FatigueDiagnosis:
    """Fatigue level with the causes that fired and a recommended action."""

    level: FatigueLevel
    causes: List[str] = field(default_factory=list)
    action: str = ""
    score: int = 0

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "display_name": self.level.display_name,
            "score": self.score,
            "causes": self.causes,
            "action": self.action,
        }


def level_for_score(score: int) -> FatigueLevel:
    """Map a fatigue score to its level (high >= 55, medium >= 30)."""
    if score >= FatigueService.HIGH_THRESHOLD:
        return FatigueLevel.HIGH
    if score >= FatigueService.MEDIUM_THRESHOLD:
        return FatigueLevel.MEDIUM
    return FatigueLevel.LOW


class FatigueService(BaseService):
    """Diagnoses accumulated fatigue over the last two weeks."""

    WINDOW_DAYS = 14
    HIGH_THRESHOLD = 55
    MEDIUM_THRESHOLD = 30
    LOAD_SPIKE_FACTOR = 1.4
    HARD_RATIO_LIMIT = 0.35
    FETCH_LIMIT = 200

    def compute(self, profile: Optional[RunnerProfile] = None) -> FatigueDiagnosis:
        """Diagnose fatigue from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        reflections = self.repository.fetch_reflections()
        return self.compute_from_activities(activities, profile, reflections)

    def compute_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
        reflections: Optional[Sequence[PostActivityReflection]] = None,
    ) -> FatigueDiagnosis:
        """
        Diagnose fatigue from activities and reflections.

        Args:
            activities: Activity history (the weekly baseline uses all of it)
            profile: Runner profile for the easy-pace reference
            reflections: Post-activity reflections (only the last 14 days count)

        Returns:
            FatigueDiagnosis
        """
        now = self.now()
        recent_start = self.calendar.add_days(now, -self.WINDOW_DAYS)
        all_runs = usable_runs(activities, self._logger)
        recent = sorted(
            (a for a in all_runs if a.start_date >= recent_start),
            key=lambda a: a.start_date,
        )
        self._logger.debug(f"Fatigue window holds {len(recent)} of {len(all_runs)} runs")

        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        score = 0
        causes: List[str] = []

        consecutive = self.max_consecutive_days(recent)
        if consecutive >= 3:
            score += 25
            causes.append(f"{consecutive} días seguidos entrenando")

        recent_hours = sum(a.moving_time for a in recent) / 3600
        baseline = self.weekly_hours_baseline(all_runs)
        if baseline is None:
            baseline = recent_hours / 2
        if baseline > 0 and recent_hours > baseline * self.LOAD_SPIKE_FACTOR:
            score += 20
            causes.append("Carga reciente muy por encima de tu media")

        if recent:
            if easy_pace_ms > 0:
                hard = sum(1 for a in recent if a.average_speed > easy_pace_ms * 1.08)
            else:
                hard = len(recent)
            if hard / len(recent) > self.HARD_RATIO_LIMIT:
                score += 20
                causes.append("Muchas sesiones exigentes recientes")

        total_time = sum(a.moving_time for a in recent)
        easy_ratio = easy_time_ratio(recent, easy_pace_ms, factor=1.02, default=0.5)
        if easy_ratio < 0.5 and total_time > 3600:
            score += 15
            causes.append("Poco volumen fácil en los últimos días")

        recent_reflections = [
            r for r in (reflections or []) if recent_start <= r.date <= now
        ]
        if any(r.pushed_too_hard for r in recent_reflections):
            score += 15
            causes.append("Has indicado que forzaste de más recientemente")
        if any(r.feeling_score <= 2 for r in recent_reflections):
            score += 10
            causes.append("Sensación baja en sesiones recientes")

        level = level_for_score(score)
        return FatigueDiagnosis(
            level=level,
            causes=causes or [NO_SIGNALS_CAUSE],
            action=ACTIONS[level],
            score=score,
        )

    def max_consecutive_days(self, runs: List[Activity]) -> int:
        """Longest run of consecutive Madrid calendar days with activity (sorted input)."""
        best = 0
        current = 0
        previous_day: Optional[datetime] = None
        for act in runs:
            day = self.calendar.start_of_day(act.start_date)
            if previous_day is None:
                current = 1
            else:
                diff = self.calendar.day_difference(previous_day, day)
                if diff == 0:
                    continue
                current = current + 1 if diff == 1 else 1
            best = max(best, current)
            previous_day = day
        return best

    def weekly_hours_baseline(self, runs: List[Activity]) -> Optional[float]:
        """Median of hours per Madrid week over the whole history."""
        weekly: Dict[datetime, float] = defaultdict(float)
        for act in runs:
            weekly[self.calendar.start_of_week(act.start_date)] += act.moving_time / 3600
        return median(list(weekly.values()))
