"""
Data-quality gate.

Every per-activity metric checks a capability predicate before it computes
anything, so sparse or non-running records produce an explanation instead
of confident-looking numbers.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models.activity import Activity, ActivitySplit

MIN_DURATION_SECONDS = 10 * 60
MIN_DISTANCE_METERS = 1000.0
MIN_SPLITS = 2


@dataclass(frozen=True)
class DataQuality:
    """Capability flags of one activity."""

    has_heartrate: bool
    has_splits: bool
    has_enough_duration: bool
    has_enough_distance: bool
    is_run: bool

    @classmethod
    def evaluate(
        cls,
        activity: Activity,
        splits: Optional[Sequence[ActivitySplit]] = None,
    ) -> "DataQuality":
        """
        Evaluate the data quality of an activity.

        Args:
            activity: Activity to inspect
            splits: Splits to use instead of the activity's own

        Returns:
            DataQuality flags
        """
        splits_to_use = splits if splits is not None else activity.sorted_splits
        return cls(
            has_heartrate=activity.has_heartrate and activity.average_heartrate is not None,
            has_splits=bool(splits_to_use) and len(splits_to_use) >= MIN_SPLITS,
            has_enough_duration=activity.moving_time >= MIN_DURATION_SECONDS,
            has_enough_distance=activity.distance >= MIN_DISTANCE_METERS,
            is_run=activity.is_run,
        )

    @property
    def can_use_heartrate_metrics(self) -> bool:
        return self.has_heartrate and self.is_run

    @property
    def can_use_split_metrics(self) -> bool:
        return self.has_splits and self.has_enough_distance and self.is_run

    @property
    def can_classify(self) -> bool:
        return self.is_run and (self.has_enough_duration or self.has_enough_distance)

    @property
    def missing_reasons(self) -> List[str]:
        """Why some metrics cannot be computed (user-facing, Spanish)."""
        reasons = []
        if not self.has_heartrate:
            reasons.append("No hay datos de frecuencia cardíaca")
        if not self.has_splits:
            reasons.append("No hay splits por kilómetro")
        if not self.has_enough_duration:
            reasons.append("Duración insuficiente para análisis")
        if not self.has_enough_distance:
            reasons.append("Distancia insuficiente para análisis")
        if not self.is_run:
            reasons.append("Solo aplicable a actividades de carrera")
        return reasons

    def tooltip_message(self, metric: str) -> Optional[str]:
        """Message explaining why ``metric`` is unavailable, or None."""
        key = metric.lower()
        if key in ("heartrate", "fc", "deriva"):
            relevant = [r for r in self.missing_reasons if "frecuencia" in r or "splits" in r]
        elif key in ("consistency", "clasificación"):
            relevant = [r for r in self.missing_reasons if "carrera" in r or "Duración" in r]
        else:
            relevant = self.missing_reasons
        if not relevant:
            return None
        return f"No se puede calcular {metric}: {'; '.join(relevant)}."

    def to_dict(self) -> dict:
        return {
            "has_heartrate": self.has_heartrate,
            "has_splits": self.has_splits,
            "has_enough_duration": self.has_enough_duration,
            "has_enough_distance": self.has_enough_distance,
            "is_run": self.is_run,
            "can_use_heartrate_metrics": self.can_use_heartrate_metrics,
            "can_use_split_metrics": self.can_use_split_metrics,
            "can_classify": self.can_classify,
            "missing_reasons": self.missing_reasons,
        }
