"""
Weekly narrative.

Short, honest Spanish summary of the current Madrid week built from local
data: volume, regularity, gaps inside the week, easy volume, demanding
sessions, efficiency and fatigue.
"""

from typing import List, Optional

from ..models.activity import Activity, RunnerProfile
from .base import BaseService, easy_time_ratio, in_range, is_hard_session, usable_runs
from .consistency import ConsistencyBreakdown
from .efficiency_trend import TrendDirection
from .fatigue import FatigueDiagnosis, FatigueLevel

EMPTY_WEEK_TEXT = "Sin actividades de carrera esta semana."


class WeeklyNarrativeService(BaseService):
    """Generates the narrative of the current week."""

    GAP_THRESHOLD_DAYS = 4
    FETCH_LIMIT = 200

    def fetch_this_week_runs(self) -> List[Activity]:
        """Runs in ``[Monday 00:00, next Monday 00:00)`` Madrid time."""
        week_start, week_end = self.calendar.week_range(self.now())
        recent = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        return [a for a in recent if a.is_run and in_range(a, week_start, week_end)]

    def generate(
        self,
        profile: Optional[RunnerProfile] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
        efficiency_trend: Optional[TrendDirection] = None,
    ) -> str:
        """Generate the narrative from the repository (RepositoryError propagates)."""
        return self.generate_from_data(
            self.fetch_this_week_runs(), profile, consistency, fatigue, efficiency_trend
        )

    def generate_from_data(
        self,
        week_activities: List[Activity],
        profile: Optional[RunnerProfile] = None,
        consistency: Optional[ConsistencyBreakdown] = None,
        fatigue: Optional[FatigueDiagnosis] = None,
        efficiency_trend: Optional[TrendDirection] = None,
    ) -> str:
        """
        Build the narrative text for the given week's runs.

        Args:
            week_activities: Runs of the week being described
            profile: Runner profile for easy/hard pace references
            consistency: Consistency breakdown
            fatigue: Fatigue diagnosis
            efficiency_trend: Direction of the efficiency trend

        Returns:
            Narrative sentences joined by spaces
        """
        runs = sorted(usable_runs(week_activities, self._logger), key=lambda a: a.start_date)
        if not runs:
            return EMPTY_WEEK_TEXT

        parts: List[str] = []

        session_count = len(runs)
        total_km = sum(a.distance for a in runs) / 1000
        total_time = sum(a.moving_time for a in runs)
        total_hours = total_time / 3600

        summary = ["1 sesión" if session_count == 1 else f"{session_count} sesiones"]
        if total_km > 0:
            summary.append(f"{total_km:.1f} km")
        if total_hours > 0:
            summary.append(f"{total_hours:.1f} h")
        parts.append(", ".join(summary) + ".")

        easy_pace_ms = profile.easy_pace_ms if profile else 0.0
        easy_ratio = easy_time_ratio(runs, easy_pace_ms, factor=1.02, default=0.0)

        hard_sessions = 0
        consecutive_hard = 0
        max_consecutive_hard = 0
        for act in runs:
            if is_hard_session(act, easy_pace_ms):
                hard_sessions += 1
                consecutive_hard += 1
                max_consecutive_hard = max(max_consecutive_hard, consecutive_hard)
            else:
                consecutive_hard = 0

        if consistency is not None:
            if consistency.consecutive_weeks >= 4:
                parts.append("Semana consistente.")
            elif consistency.consecutive_weeks == 0:
                parts.append("Semana irregular.")

        gaps_in_week = sum(
            1 for prev, cur in zip(runs, runs[1:])
            if self.calendar.day_difference(prev.start_date, cur.start_date) > self.GAP_THRESHOLD_DAYS
        )
        if gaps_in_week > 0:
            parts.append("Hay un hueco de más de 4 días entre sesiones esta semana.")

        if easy_ratio < 0.5 and total_time > 3600:
            parts.append("Poco volumen fácil.")
        elif easy_ratio >= 0.75:
            parts.append("Buena proporción de rodaje fácil.")

        if hard_sessions >= 2 and max_consecutive_hard >= 2:
            parts.append("Dos o más sesiones exigentes seguidas.")
        elif hard_sessions == 0 and session_count >= 2:
            if easy_pace_ms > 0:
                parts.append("Solo rodajes suaves esta semana (ritmo ≤ ritmo cómodo + 8%).")
            else:
                parts.append("Solo rodajes suaves esta semana.")

        if efficiency_trend == TrendDirection.DECLINING:
            parts.append("La eficiencia baja ligeramente.")

        if fatigue is not None:
            if fatigue.level == FatigueLevel.HIGH:
                parts.append("Probablemente por fatiga acumulada.")
            elif fatigue.level == FatigueLevel.MEDIUM:
                parts.append("Posible fatiga moderada.")

        return " ".join(parts)
