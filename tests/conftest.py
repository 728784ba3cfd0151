"""Pytest configuration and fixtures."""

import itertools
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from sportboard.clock import FixedClock, MadridCalendar
from sportboard.db.database import ActivityDatabase
from sportboard.models.activity import Activity, ActivitySplit, RunnerProfile

MADRID = ZoneInfo("Europe/Madrid")
FIXTURES_DIR = Path(__file__).parent / "fixtures"
GOLDEN_DIR = Path(__file__).parent / "golden"


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def db(temp_db_path):
    """Empty activity database."""
    return ActivityDatabase(db_path=temp_db_path)


@pytest.fixture
def calendar():
    return MadridCalendar()


@pytest.fixture
def madrid():
    """Build an aware UTC instant from Madrid wall-clock components."""

    def build(year, month, day, hour=0, minute=0, second=0):
        local = datetime(year, month, day, hour, minute, second, tzinfo=MADRID)
        return local.astimezone(timezone.utc)

    return build


@pytest.fixture
def clock_at():
    """Build a FixedClock frozen at an instant."""
    return FixedClock


@pytest.fixture
def make_activity():
    """
    Build running activities with consistent distance, time and speed.

    Distance is derived from ``speed * minutes``; any Activity field can be
    overridden through keyword arguments.
    """
    ids = itertools.count(1)

    def build(start, minutes=45.0, speed=3.0, sport_type="Run", **overrides):
        moving_time = int(round(minutes * 60))
        fields = dict(
            id=next(ids),
            name="Rodaje",
            sport_type=sport_type,
            start_date=start,
            distance=speed * moving_time,
            moving_time=moving_time,
            elapsed_time=moving_time,
            average_speed=speed,
        )
        fields.update(overrides)
        return Activity(**fields)

    return build


@pytest.fixture
def make_splits():
    """Build 1 km splits from (elapsed seconds, heart rate) pairs."""

    def build(activity_id, pairs):
        return [
            ActivitySplit(
                activity_id=activity_id,
                split_index=i,
                distance=1000,
                moving_time=elapsed,
                elapsed_time=elapsed,
                average_speed=1000 / elapsed,
                average_heartrate=hr,
            )
            for i, (elapsed, hr) in enumerate(pairs, start=1)
        ]

    return build


@pytest.fixture
def make_profile():
    """Build a runner profile (valid by default)."""

    def build(easy=3.0, threshold=3.6, confidence=0.8, **overrides):
        fields = dict(
            easy_pace_ms=easy,
            threshold_pace_ms=threshold,
            weekly_variability=0.2,
            easy_hard_ratio=0.75,
            confidence=confidence,
            last_computed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        fields.update(overrides)
        return RunnerProfile(**fields)

    return build


@pytest.fixture
def sample_payload():
    """Decoded reference activity fixture (provider camelCase JSON)."""
    with open(FIXTURES_DIR / "activity_sample.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def golden_web_json():
    """Expected web export of the reference activity."""
    return (GOLDEN_DIR / "activity_sample_web.json").read_text(encoding="utf-8")
