"""Domain records for the activity store.

Activities own their laps and splits; laps and splits keep an id-based
back-reference (``activity_id``) to their owner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..clock import ensure_utc
from ..exceptions import InvalidRecordError
from ..metrics.stats import round_half_away

RUNNING_SPORT_TYPES = frozenset({"run", "virtualrun", "trailrun"})

PROFILE_SPORT_TYPE = "Run"


def is_running_sport(sport_type: str) -> bool:
    """Check whether a free-form sport tag is one of the running variants."""
    return (sport_type or "").lower() in RUNNING_SPORT_TYPES


def format_pace_seconds(seconds_per_km: int) -> str:
    """Format seconds per km as ``M:SS``."""
    minutes, seconds = divmod(seconds_per_km, 60)
    return f"{minutes}:{seconds:02d}"


@dataclass
class ActivitySplit:
    """Per-kilometer subrecord generated by the provider."""

    activity_id: int
    split_index: int
    distance: float
    moving_time: int
    elapsed_time: int
    average_speed: float = 0.0
    average_heartrate: Optional[float] = None
    elevation_difference: float = 0.0
    pace_zone: Optional[int] = None

    @property
    def ritmo_s_km(self) -> Optional[int]:
        """Canonical pace in seconds per km, derived from elapsed time (not speed)."""
        km = self.distance / 1000
        if km <= 0:
            return None
        return round_half_away(self.elapsed_time / km)

    @property
    def formatted_pace(self) -> str:
        seconds = self.ritmo_s_km
        if seconds is None:
            return "--:--"
        return format_pace_seconds(seconds)

    def validate_pace_consistency(self) -> bool:
        """For ~1 km splits the pace and the elapsed time must agree within 1 s."""
        seconds = self.ritmo_s_km
        if seconds is None:
            return True
        if 950 <= self.distance <= 1050:
            return abs(seconds - self.elapsed_time) <= 1
        return True

    def to_dict(self) -> dict:
        return {
            "activity_id": self.activity_id,
            "split_index": self.split_index,
            "distance": self.distance,
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "average_speed": self.average_speed,
            "average_heartrate": self.average_heartrate,
            "elevation_difference": self.elevation_difference,
            "pace_zone": self.pace_zone,
            "ritmo_s_km": self.ritmo_s_km,
        }


@dataclass
class ActivityLap:
    """Athlete-marked interval subrecord."""

    activity_id: int
    lap_index: int
    distance: float
    moving_time: int
    elapsed_time: int
    name: Optional[str] = None
    total_elevation_gain: float = 0.0
    average_speed: float = 0.0
    max_speed: float = 0.0
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_watts: Optional[float] = None
    average_cadence: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "activity_id": self.activity_id,
            "lap_index": self.lap_index,
            "name": self.name,
            "distance": self.distance,
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "total_elevation_gain": self.total_elevation_gain,
            "average_speed": self.average_speed,
            "max_speed": self.max_speed,
            "average_heartrate": self.average_heartrate,
            "max_heartrate": self.max_heartrate,
            "average_watts": self.average_watts,
            "average_cadence": self.average_cadence,
        }


@dataclass
class Activity:
    """Summary record of one activity, with its laps and splits."""

    id: int
    name: str
    sport_type: str
    start_date: datetime
    distance: float = 0.0
    moving_time: int = 0
    elapsed_time: int = 0
    total_elevation_gain: float = 0.0
    average_speed: float = 0.0
    max_speed: float = 0.0
    start_date_local: Optional[datetime] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_watts: Optional[float] = None
    max_watts: Optional[float] = None
    kilojoules: Optional[float] = None
    has_heartrate: bool = False
    has_power_meter: bool = False
    device_name: Optional[str] = None
    description: Optional[str] = None
    has_laps: bool = False
    has_splits_metric: bool = False
    laps: List[ActivityLap] = field(default_factory=list)
    splits: List[ActivitySplit] = field(default_factory=list)
    synced_at: Optional[datetime] = None
    details_fetched: bool = False

    def __post_init__(self):
        self.start_date = ensure_utc(self.start_date)
        if self.start_date_local is not None:
            # Wall-clock components only
            self.start_date_local = self.start_date_local.replace(tzinfo=None)

    @property
    def is_run(self) -> bool:
        return is_running_sport(self.sport_type)

    @property
    def duration_minutes(self) -> float:
        return self.moving_time / 60

    @property
    def distance_km(self) -> float:
        return self.distance / 1000

    @property
    def pace_sec_per_km(self) -> Optional[float]:
        if self.average_speed <= 0:
            return None
        return 1000 / self.average_speed

    @property
    def sorted_laps(self) -> Optional[List[ActivityLap]]:
        if not self.has_laps or not self.laps:
            return None
        return sorted(self.laps, key=lambda lap: lap.lap_index)

    @property
    def sorted_splits(self) -> Optional[List[ActivitySplit]]:
        if not self.has_splits_metric or not self.splits:
            return None
        return sorted(self.splits, key=lambda split: split.split_index)

    def validate_record(self) -> None:
        """Raise InvalidRecordError if the record breaks a data invariant."""
        if self.distance < 0:
            raise InvalidRecordError(self.id, "negative distance")
        if self.moving_time < 0 or self.elapsed_time < 0:
            raise InvalidRecordError(self.id, "negative time")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sport_type": self.sport_type,
            "start_date": self.start_date.isoformat(),
            "start_date_local": self.start_date_local.isoformat() if self.start_date_local else None,
            "distance": self.distance,
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "total_elevation_gain": self.total_elevation_gain,
            "average_speed": self.average_speed,
            "max_speed": self.max_speed,
            "average_heartrate": self.average_heartrate,
            "max_heartrate": self.max_heartrate,
            "average_watts": self.average_watts,
            "max_watts": self.max_watts,
            "has_heartrate": self.has_heartrate,
            "has_laps": self.has_laps,
            "has_splits_metric": self.has_splits_metric,
            "laps": [lap.to_dict() for lap in self.laps],
            "splits": [split.to_dict() for split in self.splits],
            "details_fetched": self.details_fetched,
        }


@dataclass
class RunnerProfile:
    """Per-athlete pace references derived from the activity history."""

    easy_pace_ms: float
    threshold_pace_ms: float
    weekly_variability: float
    easy_hard_ratio: float
    confidence: float
    last_computed_at: datetime
    sport_type: str = PROFILE_SPORT_TYPE

    MIN_VALID_CONFIDENCE = 0.3

    def __post_init__(self):
        self.last_computed_at = ensure_utc(self.last_computed_at)

    @property
    def is_valid(self) -> bool:
        return (
            self.easy_pace_ms > 0
            and self.threshold_pace_ms > 0
            and self.confidence >= self.MIN_VALID_CONFIDENCE
        )

    @property
    def easy_pace_sec_per_km(self) -> Optional[float]:
        if self.easy_pace_ms <= 0:
            return None
        return 1000 / self.easy_pace_ms

    @property
    def threshold_pace_sec_per_km(self) -> Optional[float]:
        if self.threshold_pace_ms <= 0:
            return None
        return 1000 / self.threshold_pace_ms

    def to_dict(self) -> dict:
        return {
            "sport_type": self.sport_type,
            "easy_pace_ms": self.easy_pace_ms,
            "threshold_pace_ms": self.threshold_pace_ms,
            "weekly_variability": self.weekly_variability,
            "easy_hard_ratio": self.easy_hard_ratio,
            "confidence": self.confidence,
            "last_computed_at": self.last_computed_at.isoformat(),
            "is_valid": self.is_valid,
        }


@dataclass
class PostActivityReflection:
    """Subjective feedback recorded after an activity."""

    activity_id: int
    date: datetime
    feeling_score: int = 3
    pushed_too_hard: bool = False
    would_repeat_today: bool = True

    def __post_init__(self):
        self.date = ensure_utc(self.date)
        self.feeling_score = min(5, max(1, int(self.feeling_score)))

    def to_dict(self) -> dict:
        return {
            "activity_id": self.activity_id,
            "date": self.date.isoformat(),
            "feeling_score": self.feeling_score,
            "pushed_too_hard": self.pushed_too_hard,
            "would_repeat_today": self.would_repeat_today,
        }


@dataclass
class SyncState:
    """Progress of the upstream synchronisation (kept only so it can be reset)."""

    id: str = "main"
    last_synced_at: Optional[datetime] = None
    last_activity_date: Optional[datetime] = None
    is_first_sync: bool = True
    current_phase: str = "idle"
    total_activities: int = 0
    synced_activities: int = 0
    failed_activity_ids: List[int] = field(default_factory=list)
