"""Domain records and import payloads."""

from .activity import (
    PROFILE_SPORT_TYPE,
    RUNNING_SPORT_TYPES,
    Activity,
    ActivityLap,
    ActivitySplit,
    PostActivityReflection,
    RunnerProfile,
    SyncState,
    format_pace_seconds,
    is_running_sport,
)
from .payloads import (
    ActivityFixture,
    ImportBundle,
    ReflectionPayload,
    parse_import_payload,
)

__all__ = [
    "PROFILE_SPORT_TYPE",
    "RUNNING_SPORT_TYPES",
    "Activity",
    "ActivityLap",
    "ActivitySplit",
    "PostActivityReflection",
    "RunnerProfile",
    "SyncState",
    "format_pace_seconds",
    "is_running_sport",
    "ActivityFixture",
    "ImportBundle",
    "ReflectionPayload",
    "parse_import_payload",
]
