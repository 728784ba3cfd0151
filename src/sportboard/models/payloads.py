"""Import payload models (provider-style camelCase JSON).

A payload file holds either one activity fixture, a list of them, or a
bundle ``{"activities": [...], "reflections": [...]}``. Each fixture is
``{"activity": {...}, "splits": [...], "laps": [...]}``.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import PayloadValidationError
from .activity import Activity, ActivityLap, ActivitySplit, PostActivityReflection


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SplitPayload(_CamelModel):
    """Per-kilometer split as delivered by the provider."""

    split_index: int
    distance: float
    moving_time: int
    elapsed_time: int
    average_speed: float = 0.0
    average_heartrate: Optional[float] = None
    elevation_difference: float = 0.0
    pace_zone: Optional[int] = None

    def to_split(self, activity_id: int) -> ActivitySplit:
        return ActivitySplit(activity_id=activity_id, **self.model_dump())


class LapPayload(_CamelModel):
    """Lap as delivered by the provider."""

    lap_index: int
    name: Optional[str] = None
    distance: float
    moving_time: int
    elapsed_time: int
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    average_speed: float = 0.0
    max_speed: float = 0.0
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    average_watts: Optional[float] = None
    average_cadence: Optional[float] = None
    total_elevation_gain: float = 0.0

    def to_lap(self, activity_id: int) -> ActivityLap:
        data = self.model_dump(exclude={"start_index", "end_index"})
        return ActivityLap(activity_id=activity_id, **data)


class ActivityPayload(_CamelModel):
    """Activity summary as delivered by the provider."""

    id: int
    name: str
    sport_type: str
    start_date: datetime
    start_date_local: Optional[datetime] = None
    distance: float = 0.0
    moving_time: int = 0
    elapsed_time: int = 0
    total_elevation_gain: float = 0.0
    average_speed: float = 0.0
    max_speed: float = 0.0
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


class ActivityFixture(_CamelModel):
    """One activity with its optional subrecords."""

    activity: ActivityPayload
    splits: Optional[List[SplitPayload]] = None
    laps: Optional[List[LapPayload]] = None

    def to_activity(self, synced_at: Optional[datetime] = None) -> Activity:
        payload = self.activity
        activity = Activity(
            synced_at=synced_at,
            details_fetched=self.splits is not None or self.laps is not None,
            **payload.model_dump(),
        )
        if self.splits:
            activity.splits = [s.to_split(payload.id) for s in self.splits]
        if self.laps:
            activity.laps = [lap.to_lap(payload.id) for lap in self.laps]
        return activity


class ReflectionPayload(_CamelModel):
    """Post-activity reflection entered by the athlete."""

    activity_id: int
    date: datetime
    feeling_score: int = 3
    pushed_too_hard: bool = False
    would_repeat_today: bool = True

    def to_reflection(self) -> PostActivityReflection:
        return PostActivityReflection(**self.model_dump())


class ImportBundle(_CamelModel):
    """Everything a payload file can carry."""

    activities: List[ActivityFixture] = Field(default_factory=list)
    reflections: List[ReflectionPayload] = Field(default_factory=list)


def parse_import_payload(data: Any) -> ImportBundle:
    """
    Parse decoded JSON into an ImportBundle.

    Args:
        data: Decoded JSON (single fixture, list of fixtures or bundle)

    Returns:
        Parsed bundle

    Raises:
        PayloadValidationError: If the payload does not match the expected shape
    """
    try:
        if isinstance(data, list):
            return ImportBundle(activities=[ActivityFixture.model_validate(item) for item in data])
        if isinstance(data, dict) and "activity" in data:
            return ImportBundle(activities=[ActivityFixture.model_validate(data)])
        return ImportBundle.model_validate(data)
    except ValidationError as e:
        raise PayloadValidationError(
            "Invalid import payload",
            details={"errors": e.errors(include_url=False)},
        ) from e
