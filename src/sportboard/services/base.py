"""
Base service classes and protocols.

Defines the repository interface consumed by the analyzers and the base
class that wires repository, clock, calendar and logging into each service.
"""

from abc import ABC
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable
import logging

from ..clock import Clock, MadridCalendar, SystemClock, get_calendar
from ..exceptions import InvalidRecordError
from ..models.activity import Activity, PostActivityReflection, RunnerProfile

module_logger = logging.getLogger(__name__)


@runtime_checkable
class ActivityRepository(Protocol):
    """
    Protocol defining the activity store the engine reads from.

    Implementations raise RepositoryError on failure.
    """

    def fetch_running_activities(
        self,
        limit: Optional[int] = None,
        order: str = "desc",
    ) -> List[Activity]:
        """Running activities ordered by start date."""
        ...

    def fetch_all_activities(
        self,
        limit: Optional[int] = None,
        order: str = "desc",
    ) -> List[Activity]:
        """Activities of every sport ordered by start date."""
        ...

    def fetch_activities_between(
        self,
        start: datetime,
        end: datetime,
        order: str = "desc",
    ) -> List[Activity]:
        """Activities of every sport starting in [start, end)."""
        ...

    def get_activity(self, activity_id: int) -> Activity:
        """One activity with its laps and splits (ActivityNotFoundError when missing)."""
        ...

    def fetch_reflections(self) -> List[PostActivityReflection]:
        """All post-activity reflections."""
        ...

    def fetch_profile(self, sport_type: str = "Run") -> Optional[RunnerProfile]:
        """Stored profile for a sport tag."""
        ...

    def delete_profiles(self, sport_type: str = "Run") -> None:
        """Stage deletion of the profiles of a sport tag."""
        ...

    def insert_profile(self, profile: RunnerProfile) -> None:
        """Stage insertion of a profile."""
        ...

    def save(self) -> None:
        """Commit staged writes."""
        ...


class BaseService(ABC):
    """
    Abstract base class for repository-backed analyzers.

    Provides common functionality:
    - Injected clock and calendar (no analyzer reads the wall clock)
    - Logging setup
    - Record filtering shared by the aggregate analyzers
    """

    def __init__(
        self,
        repository: Optional[ActivityRepository] = None,
        clock: Optional[Clock] = None,
        calendar: Optional[MadridCalendar] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._calendar = calendar or get_calendar()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def logger(self) -> logging.Logger:
        """Get the logger instance."""
        return self._logger

    @property
    def repository(self) -> ActivityRepository:
        if self._repository is None:
            raise RuntimeError(f"{self.__class__.__name__} has no repository configured")
        return self._repository

    @property
    def calendar(self) -> MadridCalendar:
        return self._calendar

    def now(self) -> datetime:
        return self._clock.now()


def valid_records(
    activities: Iterable[Activity],
    logger: Optional[logging.Logger] = None,
) -> List[Activity]:
    """Drop records that break a data invariant (negative distance or time)."""
    log = logger or module_logger
    kept = []
    for activity in activities:
        try:
            activity.validate_record()
        except InvalidRecordError as e:
            log.debug(f"Skipping record: {e.message}")
            continue
        kept.append(activity)
    return kept


def usable_runs(
    activities: Iterable[Activity],
    logger: Optional[logging.Logger] = None,
) -> List[Activity]:
    """Valid running activities (run, virtualrun, trailrun)."""
    return [a for a in valid_records(activities, logger) if a.is_run]


def easy_time_ratio(
    activities: Iterable[Activity],
    easy_pace_ms: float,
    factor: float = 1.02,
    default: float = 0.5,
) -> float:
    """
    Share of moving time spent at or below ``easy_pace_ms * factor``.

    Nothing counts as easy without a positive easy pace. Returns ``default``
    when there is no moving time at all.
    """
    total = 0
    easy = 0
    for activity in activities:
        total += activity.moving_time
        if easy_pace_ms > 0 and activity.average_speed <= easy_pace_ms * factor:
            easy += activity.moving_time
    if total <= 0:
        return default
    return easy / total


def is_hard_session(activity: Activity, easy_pace_ms: float) -> bool:
    """A run faster than 108% of the easy pace (needs a positive easy pace)."""
    return easy_pace_ms > 0 and activity.average_speed > easy_pace_ms * 1.08


def in_range(activity: Activity, start: datetime, end: datetime) -> bool:
    """Half-open ``[start, end)`` membership on the UTC start instant."""
    return start <= activity.start_date < end
