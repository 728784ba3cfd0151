"""
Next workout suggestion.

Not a training plan: with no race goal on record every suggestion runs in
maintenance mode, choosing between easy Z2 running, a moderate return run
or compensating easy volume from fatigue, recent hard sessions and gaps.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..models.activity import Activity, RunnerProfile
from .base import BaseService, easy_time_ratio, is_hard_session, usable_runs
from .consistency import ConsistencyBreakdown
from .fatigue import FatigueDiagnosis, FatigueLevel

MAINTENANCE_PREFIX = "Modo mantenimiento. "


@dataclass
class NextWorkoutSuggestion:
    """Suggested next session (duration range in minutes)."""

    type: str
    duration_min: int
    duration_max: int
    intensity: str  # fácil, moderado, exigente
    reason: str
    full_text: str

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "duration_min": self.duration_min,
            "duration_max": self.duration_max,
            "intensity": self.intensity,
            "reason": self.reason,
            "full_text": self.full_text,
        }


def _suggestion(
    type: str,
    duration_min: int,
    duration_max: int,
    intensity: str,
    reason: str,
    full_text: str,
) -> NextWorkoutSuggestion:
    return NextWorkoutSuggestion(
        type=type,
        duration_min=duration_min,
        duration_max=duration_max,
        intensity=intensity,
        reason=MAINTENANCE_PREFIX + reason,
        full_text=MAINTENANCE_PREFIX + full_text,
    )


class NextWorkoutService(BaseService):
    """Rule pipeline for the next session; the first matching rule wins."""

    RECENT_DAYS = 7
    GAP_THRESHOLD_DAYS = 2
    LONG_GAP_DAYS = 5
    FETCH_LIMIT = 100

    def suggest(
        self,
        profile: Optional[RunnerProfile] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
    ) -> NextWorkoutSuggestion:
        """Suggest from the repository (RepositoryError propagates)."""
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        return self.suggest_from_activities(activities, profile, fatigue, consistency)

    def suggest_from_activities(
        self,
        activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
    ) -> NextWorkoutSuggestion:
        now = self.now()
        recent_start = self.calendar.add_days(now, -self.RECENT_DAYS)
        recent = sorted(
            (a for a in usable_runs(activities, self._logger) if a.start_date >= recent_start),
            key=lambda a: a.start_date,
            reverse=True,
        )

        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        hard_count = sum(1 for a in recent if is_hard_session(a, easy_pace_ms))
        easy_ratio = easy_time_ratio(recent, easy_pace_ms, factor=1.02, default=0.5)
        days_since_last = self.calendar.day_difference(recent[0].start_date, now) if recent else 0

        fatigue_high = fatigue is not None and fatigue.level == FatigueLevel.HIGH
        fatigue_medium = fatigue is not None and fatigue.level == FatigueLevel.MEDIUM
        many_hard = hard_count >= 2
        low_easy_ratio = easy_ratio < 0.5

        if fatigue_high or many_hard:
            if fatigue_high:
                reason, motive = "Fatiga acumulada alta.", "fatiga acumulada"
            else:
                reason, motive = "Dos o más sesiones exigentes recientes.", "varias sesiones intensas recientes"
            return _suggestion(
                "Rodaje Z2", 35, 50, "fácil", reason,
                f"Rodaje 35–50' en Z2, terreno llano. Motivo: {motive}. Prioriza recuperación.",
            )

        if fatigue_medium and low_easy_ratio:
            return _suggestion(
                "Rodaje fácil", 40, 55, "fácil",
                "Fatiga moderada y poca proporción fácil reciente.",
                "Rodaje 40–55' fácil, terreno llano. Motivo: fatiga moderada y baja proporción de volumen fácil.",
            )

        if days_since_last >= self.LONG_GAP_DAYS:
            return _suggestion(
                "Rodaje moderado", 35, 50, "moderado",
                "Varios días sin entrenar. Volver con calma.",
                "Rodaje 35–50' a ritmo moderado. Motivo: varios días sin entrenar; no forzar.",
            )

        if days_since_last >= self.GAP_THRESHOLD_DAYS and recent:
            return _suggestion(
                "Rodaje Z2", 40, 60, "fácil",
                "Un par de días sin entrenar. Rodaje cómodo.",
                "Rodaje 40–60' en Z2. Motivo: retomar con volumen fácil.",
            )

        if low_easy_ratio and not many_hard:
            return _suggestion(
                "Rodaje fácil", 45, 60, "fácil",
                "Proporción fácil/duro desviada. Compensar con volumen fácil.",
                "Rodaje 45–60' fácil. Motivo: compensar proporción fácil/duro.",
            )

        return _suggestion(
            "Rodaje Z2", 40, 55, "fácil",
            "Mantener base. Rodaje cómodo.",
            "Rodaje 40–55' en Z2, terreno llano. Motivo: mantener base y consistencia.",
        )
