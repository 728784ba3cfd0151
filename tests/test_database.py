"""Tests for the SQLite activity store.

This module tests:
- Saving and loading activities with laps and splits
- Running-activity queries and ordering
- Reflections and the runner profile delete-then-insert protocol
- Reset and statistics
- Error wrapping
"""

from datetime import datetime, timezone

import pytest

from sportboard.config import get_settings
from sportboard.db.database import ActivityDatabase, get_default_db_path
from sportboard.exceptions import ActivityNotFoundError, ErrorCode, RepositoryError
from sportboard.models.activity import (
    Activity,
    ActivityLap,
    ActivitySplit,
    PostActivityReflection,
    SyncState,
)
from sportboard.services.base import ActivityRepository


class TestActivityStorage:
    """Tests for activity persistence."""

    def test_database_satisfies_repository_protocol(self, db):
        assert isinstance(db, ActivityRepository)

    def test_save_and_get_with_children(self, db, make_activity, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8), has_splits_metric=True, has_laps=True)
        activity.start_date_local = datetime(2024, 3, 28, 8)
        activity.splits = [
            ActivitySplit(activity.id, 2, 1000, 300, 305, average_heartrate=150),
            ActivitySplit(activity.id, 1, 1000, 310, 310),
        ]
        activity.laps = [ActivityLap(activity.id, 1, 2000, 615, 615, name="Calentamiento")]
        db.save_activity(activity)

        loaded = db.get_activity(activity.id)

        assert loaded.start_date == activity.start_date
        assert loaded.start_date_local == datetime(2024, 3, 28, 8)
        assert loaded.has_splits_metric is True
        assert [s.split_index for s in loaded.sorted_splits] == [1, 2]
        assert loaded.sorted_splits[1].average_heartrate == 150
        assert loaded.laps[0].name == "Calentamiento"

    def test_resave_replaces_children(self, db, make_activity, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8), has_splits_metric=True)
        activity.splits = [ActivitySplit(activity.id, i, 1000, 300, 300) for i in (1, 2, 3)]
        db.save_activity(activity)

        activity.splits = activity.splits[:1]
        db.save_activity(activity)

        assert db.fetch_count(ActivitySplit) == 1
        assert db.fetch_count(Activity) == 1

    def test_get_missing_activity(self, db):
        with pytest.raises(ActivityNotFoundError) as exc_info:
            db.get_activity(404)
        assert exc_info.value.code == ErrorCode.ACTIVITY_NOT_FOUND
        assert isinstance(exc_info.value, RepositoryError)

    def test_delete_activity_cascades(self, db, make_activity, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8))
        activity.splits = [ActivitySplit(activity.id, 1, 1000, 300, 300)]
        db.save_activity(activity)

        assert db.delete_activity(activity.id) is True
        assert db.delete_activity(activity.id) is False
        assert db.fetch_count(ActivitySplit) == 0


class TestQueries:
    """Tests for fetch_running_activities and fetch_all_activities."""

    @pytest.fixture
    def populated(self, db, make_activity, madrid):
        db.save_activities([
            make_activity(madrid(2024, 3, 1, 8), sport_type="Run"),
            make_activity(madrid(2024, 3, 2, 8), sport_type="Ride"),
            make_activity(madrid(2024, 3, 3, 8), sport_type="TrailRun"),
            make_activity(madrid(2024, 3, 4, 8), sport_type="VirtualRun"),
            make_activity(madrid(2024, 3, 5, 8), sport_type="Swim"),
        ])
        return db

    def test_running_filter_includes_variants(self, populated):
        runs = populated.fetch_running_activities()
        assert [a.sport_type for a in runs] == ["VirtualRun", "TrailRun", "Run"]

    def test_ascending_order_and_limit(self, populated):
        runs = populated.fetch_running_activities(limit=2, order="asc")
        assert [a.sport_type for a in runs] == ["Run", "TrailRun"]

    def test_fetch_all(self, populated):
        assert len(populated.fetch_all_activities()) == 5
        assert populated.fetch_all_activities(limit=1)[0].sport_type == "Swim"

    def test_fetch_between_is_half_open(self, populated, madrid):
        activities = populated.fetch_activities_between(madrid(2024, 3, 2, 8), madrid(2024, 3, 4, 8))
        assert [a.sport_type for a in activities] == ["TrailRun", "Ride"]

    def test_invalid_order(self, populated):
        with pytest.raises(ValueError):
            populated.fetch_all_activities(order="sideways")


class TestReflectionsAndProfile:
    """Tests for reflections and the runner profile."""

    def test_reflection_round_trip(self, db):
        reflection = PostActivityReflection(
            activity_id=7, date=datetime(2024, 3, 28, 9, tzinfo=timezone.utc),
            feeling_score=2, pushed_too_hard=True, would_repeat_today=False,
        )
        db.save_reflection(reflection)

        loaded = db.get_reflection(7)
        assert loaded.feeling_score == 2
        assert loaded.pushed_too_hard is True
        assert loaded.would_repeat_today is False
        assert db.get_reflection(8) is None
        assert len(db.fetch_reflections()) == 1

    def test_profile_writes_are_staged_until_save(self, db, make_profile):
        db.insert_profile(make_profile())
        assert db.fetch_profile() is None

        db.save()
        assert db.fetch_profile().easy_pace_ms == 3.0

    def test_delete_then_insert_keeps_one_row(self, db, make_profile):
        db.insert_profile(make_profile(easy=3.0))
        db.save()

        db.delete_profiles("Run")
        db.insert_profile(make_profile(easy=3.2))
        db.save()

        assert db.fetch_profile("run").easy_pace_ms == 3.2
        assert db.get_stats()["counts"]["runner_profiles"] == 1


class TestMaintenance:
    """Tests for reset and statistics."""

    def test_reset_keeps_profile_and_reflections(self, db, make_activity, make_profile, madrid):
        activity = make_activity(madrid(2024, 3, 28, 8))
        activity.splits = [ActivitySplit(activity.id, 1, 1000, 300, 300)]
        db.save_activity(activity)
        db.save_sync_state(SyncState(total_activities=1, failed_activity_ids=[3, 4]))
        db.save_reflection(PostActivityReflection(activity_id=activity.id, date=madrid(2024, 3, 28, 9)))
        db.insert_profile(make_profile())
        db.save()

        assert db.get_sync_state().failed_activity_ids == [3, 4]

        removed = db.reset()

        assert removed["activities"] == 1
        assert removed["activity_splits"] == 1
        assert removed["sync_state"] == 1
        assert db.fetch_count(Activity) == 0
        assert db.get_sync_state() is None
        assert db.fetch_profile() is not None
        assert db.fetch_count(PostActivityReflection) == 1

    def test_stats(self, db, make_activity, madrid):
        db.save_activities([
            make_activity(madrid(2024, 3, 1, 8)),
            make_activity(madrid(2024, 3, 9, 8)),
        ])

        stats = db.get_stats()

        assert stats["counts"]["activities"] == 2
        assert stats["activity_date_range"]["earliest"].startswith("2024-03-01")
        assert stats["activity_date_range"]["latest"].startswith("2024-03-09")

    def test_unsupported_record_type(self, db):
        with pytest.raises(ValueError):
            db.fetch_count(dict)

    def test_unopenable_database_raises_repository_error(self, tmp_path):
        with pytest.raises(RepositoryError):
            ActivityDatabase(db_path=str(tmp_path / "missing" / "dir" / "x.db"))

    def test_default_path_comes_from_settings(self, monkeypatch, tmp_path):
        target = tmp_path / "from-env.db"
        monkeypatch.setenv("SPORTBOARD_DB_PATH", str(target))
        get_settings.cache_clear()
        try:
            assert get_default_db_path() == target
            assert ActivityDatabase().db_path == target
        finally:
            get_settings.cache_clear()
