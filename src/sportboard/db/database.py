"""SQLite activity store implementing the repository contract used by the engine."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..clock import ensure_utc
from ..config import get_settings
from ..exceptions import ActivityNotFoundError, RepositoryError
from ..models.activity import (
    PROFILE_SPORT_TYPE,
    RUNNING_SPORT_TYPES,
    Activity,
    ActivityLap,
    ActivitySplit,
    PostActivityReflection,
    RunnerProfile,
    SyncState,
)
from .schema import SCHEMA

logger = logging.getLogger(__name__)

# Record type -> table, for fetch_count / delete_all
TABLES = {
    Activity: "activities",
    ActivityLap: "activity_laps",
    ActivitySplit: "activity_splits",
    PostActivityReflection: "reflections",
    RunnerProfile: "runner_profiles",
    SyncState: "sync_state",
}

_ACTIVITY_COLUMNS = (
    "id", "name", "sport_type", "start_date", "start_date_local", "distance",
    "moving_time", "elapsed_time", "total_elevation_gain", "average_speed",
    "max_speed", "average_heartrate", "max_heartrate", "average_watts",
    "max_watts", "kilojoules", "has_heartrate", "has_power_meter",
    "device_name", "description", "has_laps", "has_splits_metric",
    "synced_at", "details_fetched",
)

_ACTIVITY_FLAGS = ("has_heartrate", "has_power_meter", "has_laps", "has_splits_metric", "details_fetched")


def get_default_db_path() -> Path:
    """Get the default database path (SPORTBOARD_DB_PATH via settings)."""
    return Path(get_settings().db_path)


def _to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC timestamp so lexical order matches time order."""
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="microseconds")


def _to_db_local(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(tzinfo=None).isoformat(timespec="microseconds")


def _parse_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


class ActivityDatabase:
    """SQLite store for activities, laps, splits, reflections and the runner profile."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the activity database.

        Args:
            db_path: Path to SQLite database file. If not provided,
                     uses SPORTBOARD_DB_PATH env var or the configured default.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = get_default_db_path()

        # Profile writes staged until save()
        self._pending: List[Tuple[str, tuple]] = []

        self._init_db()

    def _init_db(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise RepositoryError(f"Cannot open database: {e}", operation="connect") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RepositoryError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # === Activity Methods ===

    def save_activity(self, activity: Activity) -> None:
        """Save or replace an activity together with its laps and splits."""
        with self._get_connection() as conn:
            self._write_activity(conn, activity)

    def save_activities(self, activities: List[Activity]) -> int:
        """Save several activities in one transaction. Returns the number written."""
        with self._get_connection() as conn:
            for activity in activities:
                self._write_activity(conn, activity)
        return len(activities)

    def _write_activity(self, conn: sqlite3.Connection, activity: Activity) -> None:
        values = {
            "id": activity.id,
            "name": activity.name,
            "sport_type": activity.sport_type,
            "start_date": _to_db_timestamp(activity.start_date),
            "start_date_local": _to_db_local(activity.start_date_local),
            "distance": activity.distance,
            "moving_time": activity.moving_time,
            "elapsed_time": activity.elapsed_time,
            "total_elevation_gain": activity.total_elevation_gain,
            "average_speed": activity.average_speed,
            "max_speed": activity.max_speed,
            "average_heartrate": activity.average_heartrate,
            "max_heartrate": activity.max_heartrate,
            "average_watts": activity.average_watts,
            "max_watts": activity.max_watts,
            "kilojoules": activity.kilojoules,
            "has_heartrate": int(activity.has_heartrate),
            "has_power_meter": int(activity.has_power_meter),
            "device_name": activity.device_name,
            "description": activity.description,
            "has_laps": int(activity.has_laps),
            "has_splits_metric": int(activity.has_splits_metric),
            "synced_at": _to_db_timestamp(activity.synced_at),
            "details_fetched": int(activity.details_fetched),
        }
        placeholders = ", ".join("?" for _ in _ACTIVITY_COLUMNS)
        # Deleting first lets the old laps/splits cascade away
        conn.execute("DELETE FROM activities WHERE id = ?", (activity.id,))
        conn.execute(
            f"INSERT INTO activities ({', '.join(_ACTIVITY_COLUMNS)}) VALUES ({placeholders})",
            tuple(values[c] for c in _ACTIVITY_COLUMNS),
        )
        for lap in activity.laps:
            conn.execute(
                """
                INSERT INTO activity_laps
                (activity_id, lap_index, name, distance, moving_time, elapsed_time,
                 total_elevation_gain, average_speed, max_speed, average_heartrate,
                 max_heartrate, average_watts, average_cadence)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    activity.id,
                    lap.lap_index,
                    lap.name,
                    lap.distance,
                    lap.moving_time,
                    lap.elapsed_time,
                    lap.total_elevation_gain,
                    lap.average_speed,
                    lap.max_speed,
                    lap.average_heartrate,
                    lap.max_heartrate,
                    lap.average_watts,
                    lap.average_cadence,
                ),
            )
        for split in activity.splits:
            conn.execute(
                """
                INSERT INTO activity_splits
                (activity_id, split_index, distance, moving_time, elapsed_time,
                 average_speed, average_heartrate, elevation_difference, pace_zone)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    activity.id,
                    split.split_index,
                    split.distance,
                    split.moving_time,
                    split.elapsed_time,
                    split.average_speed,
                    split.average_heartrate,
                    split.elevation_difference,
                    split.pace_zone,
                ),
            )

    def get_activity(self, activity_id: int) -> Activity:
        """Get one activity with its laps and splits."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM activities WHERE id = ?", (activity_id,)
            ).fetchone()
            if row is None:
                raise ActivityNotFoundError(activity_id)
            return self._attach_children(conn, [self._row_to_activity(row)])[0]

    def delete_activity(self, activity_id: int) -> bool:
        """Delete an activity; its laps and splits cascade."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
            return cursor.rowcount > 0

    def fetch_running_activities(
        self,
        limit: Optional[int] = None,
        order: str = "desc",
    ) -> List[Activity]:
        """
        Get running activities (run, virtualrun, trailrun) by start date.

        Args:
            limit: Maximum number of activities, None for all
            order: "desc" (newest first) or "asc"

        Returns:
            Activities with laps and splits attached
        """
        placeholders = ", ".join("?" for _ in RUNNING_SPORT_TYPES)
        return self._fetch_activities(
            f"WHERE lower(sport_type) IN ({placeholders})",
            tuple(sorted(RUNNING_SPORT_TYPES)),
            limit,
            order,
        )

    def fetch_all_activities(
        self,
        limit: Optional[int] = None,
        order: str = "desc",
    ) -> List[Activity]:
        """Get activities of every sport by start date."""
        return self._fetch_activities("", (), limit, order)

    def fetch_activities_between(
        self,
        start: datetime,
        end: datetime,
        order: str = "desc",
    ) -> List[Activity]:
        """Activities of every sport with start_date in the half-open range [start, end)."""
        return self._fetch_activities(
            "WHERE start_date >= ? AND start_date < ?",
            (_to_db_timestamp(start), _to_db_timestamp(end)),
            None,
            order,
        )

    def _fetch_activities(
        self,
        where: str,
        params: tuple,
        limit: Optional[int],
        order: str,
    ) -> List[Activity]:
        direction = order.upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Invalid order: {order}")
        query = f"SELECT * FROM activities {where} ORDER BY start_date {direction}, id {direction}"
        if limit is not None:
            query += " LIMIT ?"
            params = params + (limit,)
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
            activities = [self._row_to_activity(row) for row in rows]
            return self._attach_children(conn, activities)

    def _attach_children(
        self,
        conn: sqlite3.Connection,
        activities: List[Activity],
    ) -> List[Activity]:
        if not activities:
            return activities
        by_id = {a.id: a for a in activities}
        placeholders = ", ".join("?" for _ in by_id)
        ids = tuple(by_id)

        lap_rows = conn.execute(
            f"SELECT * FROM activity_laps WHERE activity_id IN ({placeholders}) ORDER BY lap_index",
            ids,
        ).fetchall()
        for row in lap_rows:
            by_id[row["activity_id"]].laps.append(ActivityLap(**dict(row)))

        split_rows = conn.execute(
            f"SELECT * FROM activity_splits WHERE activity_id IN ({placeholders}) ORDER BY split_index",
            ids,
        ).fetchall()
        for row in split_rows:
            by_id[row["activity_id"]].splits.append(ActivitySplit(**dict(row)))

        return activities

    @staticmethod
    def _row_to_activity(row: sqlite3.Row) -> Activity:
        data = dict(row)
        for flag in _ACTIVITY_FLAGS:
            data[flag] = bool(data[flag])
        data["start_date"] = _parse_db_timestamp(data["start_date"])
        data["synced_at"] = _parse_db_timestamp(data["synced_at"])
        if data["start_date_local"] is not None:
            data["start_date_local"] = datetime.fromisoformat(data["start_date_local"])
        return Activity(**data)

    def fetch_count(self, model: type = Activity) -> int:
        """Count stored records of a type (Activity, ActivityLap, ...)."""
        table = self._table_for(model)
        with self._get_connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
            return row["n"]

    # === Reflection Methods ===

    def save_reflection(self, reflection: PostActivityReflection) -> None:
        """Save or update the reflection of an activity."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO reflections
                (activity_id, date, feeling_score, pushed_too_hard, would_repeat_today)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    reflection.activity_id,
                    _to_db_timestamp(reflection.date),
                    reflection.feeling_score,
                    int(reflection.pushed_too_hard),
                    int(reflection.would_repeat_today),
                ),
            )

    def get_reflection(self, activity_id: int) -> Optional[PostActivityReflection]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM reflections WHERE activity_id = ?", (activity_id,)
            ).fetchone()
            if row:
                return self._row_to_reflection(row)
            return None

    def fetch_reflections(self) -> List[PostActivityReflection]:
        """Get all reflections, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM reflections ORDER BY date").fetchall()
            return [self._row_to_reflection(row) for row in rows]

    @staticmethod
    def _row_to_reflection(row: sqlite3.Row) -> PostActivityReflection:
        return PostActivityReflection(
            activity_id=row["activity_id"],
            date=_parse_db_timestamp(row["date"]),
            feeling_score=row["feeling_score"],
            pushed_too_hard=bool(row["pushed_too_hard"]),
            would_repeat_today=bool(row["would_repeat_today"]),
        )

    # === Runner Profile Methods ===

    def fetch_profile(self, sport_type: str = PROFILE_SPORT_TYPE) -> Optional[RunnerProfile]:
        """Get the stored profile for a sport tag (case-insensitive)."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM runner_profiles WHERE lower(sport_type) = lower(?)",
                (sport_type,),
            ).fetchone()
            if row:
                data = dict(row)
                data["last_computed_at"] = _parse_db_timestamp(data["last_computed_at"])
                return RunnerProfile(**data)
            return None

    def delete_profiles(self, sport_type: str = PROFILE_SPORT_TYPE) -> None:
        """Stage deletion of the profiles of a sport tag; applied by save()."""
        self._pending.append((
            "DELETE FROM runner_profiles WHERE lower(sport_type) = lower(?)",
            (sport_type,),
        ))

    def insert_profile(self, profile: RunnerProfile) -> None:
        """Stage insertion of a profile; applied by save()."""
        self._pending.append((
            """
            INSERT INTO runner_profiles
            (sport_type, easy_pace_ms, threshold_pace_ms, weekly_variability,
             easy_hard_ratio, confidence, last_computed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                profile.sport_type,
                profile.easy_pace_ms,
                profile.threshold_pace_ms,
                profile.weekly_variability,
                profile.easy_hard_ratio,
                profile.confidence,
                _to_db_timestamp(profile.last_computed_at),
            ),
        ))

    def save(self) -> None:
        """Apply staged profile writes in a single transaction."""
        pending, self._pending = self._pending, []
        if not pending:
            return
        with self._get_connection() as conn:
            for sql, params in pending:
                conn.execute(sql, params)

    # === Sync State Methods ===

    def save_sync_state(self, state: SyncState) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO sync_state
                (id, last_synced_at, last_activity_date, is_first_sync, current_phase,
                 total_activities, synced_activities, failed_activity_ids)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    state.id,
                    _to_db_timestamp(state.last_synced_at),
                    _to_db_timestamp(state.last_activity_date),
                    int(state.is_first_sync),
                    state.current_phase,
                    state.total_activities,
                    state.synced_activities,
                    json.dumps(state.failed_activity_ids),
                ),
            )

    def get_sync_state(self, state_id: str = "main") -> Optional[SyncState]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM sync_state WHERE id = ?", (state_id,)
            ).fetchone()
            if not row:
                return None
            return SyncState(
                id=row["id"],
                last_synced_at=_parse_db_timestamp(row["last_synced_at"]),
                last_activity_date=_parse_db_timestamp(row["last_activity_date"]),
                is_first_sync=bool(row["is_first_sync"]),
                current_phase=row["current_phase"],
                total_activities=row["total_activities"],
                synced_activities=row["synced_activities"],
                failed_activity_ids=json.loads(row["failed_activity_ids"]),
            )

    # === Maintenance Methods ===

    def delete_all(self, model: type) -> int:
        """Delete every record of a type. Returns the number of rows removed."""
        table = self._table_for(model)
        with self._get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table}")
            return cursor.rowcount

    def reset(self) -> Dict[str, int]:
        """Remove activities, laps, splits and sync state (the user-facing reset)."""
        removed = {}
        # Children first so the counts are not swallowed by the cascade
        for model in (ActivitySplit, ActivityLap, Activity, SyncState):
            removed[TABLES[model]] = self.delete_all(model)
        logger.info(f"Reset activity store: {removed}")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        with self._get_connection() as conn:
            counts = {
                table: conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()["n"]
                for table in TABLES.values()
            }
            date_range = conn.execute(
                "SELECT MIN(start_date) AS earliest, MAX(start_date) AS latest FROM activities"
            ).fetchone()

        return {
            "db_path": str(self.db_path),
            "counts": counts,
            "activity_date_range": {
                "earliest": date_range["earliest"],
                "latest": date_range["latest"],
            },
        }

    @staticmethod
    def _table_for(model: type) -> str:
        try:
            return TABLES[model]
        except KeyError:
            raise ValueError(f"Unsupported record type: {model!r}") from None
