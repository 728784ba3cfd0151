"""Database schema for the local activity store."""

SCHEMA = """
-- Activity summaries (one row per provider activity)
CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    sport_type TEXT NOT NULL,
    start_date TEXT NOT NULL,        -- UTC, fixed-width ISO timestamp
    start_date_local TEXT,           -- wall clock in the athlete's zone, no offset
    distance REAL NOT NULL DEFAULT 0,
    moving_time INTEGER NOT NULL DEFAULT 0,
    elapsed_time INTEGER NOT NULL DEFAULT 0,
    total_elevation_gain REAL NOT NULL DEFAULT 0,
    average_speed REAL NOT NULL DEFAULT 0,
    max_speed REAL NOT NULL DEFAULT 0,
    average_heartrate REAL,
    max_heartrate REAL,
    average_watts REAL,
    max_watts REAL,
    kilojoules REAL,
    has_heartrate INTEGER NOT NULL DEFAULT 0,
    has_power_meter INTEGER NOT NULL DEFAULT 0,
    device_name TEXT,
    description TEXT,
    has_laps INTEGER NOT NULL DEFAULT 0,
    has_splits_metric INTEGER NOT NULL DEFAULT 0,
    synced_at TEXT,
    details_fetched INTEGER NOT NULL DEFAULT 0
);

-- Athlete-marked laps
CREATE TABLE IF NOT EXISTS activity_laps (
    activity_id INTEGER NOT NULL REFERENCES activities(id) ON DELETE CASCADE,
    lap_index INTEGER NOT NULL,
    name TEXT,
    distance REAL NOT NULL DEFAULT 0,
    moving_time INTEGER NOT NULL DEFAULT 0,
    elapsed_time INTEGER NOT NULL DEFAULT 0,
    total_elevation_gain REAL NOT NULL DEFAULT 0,
    average_speed REAL NOT NULL DEFAULT 0,
    max_speed REAL NOT NULL DEFAULT 0,
    average_heartrate REAL,
    max_heartrate REAL,
    average_watts REAL,
    average_cadence REAL,
    PRIMARY KEY (activity_id, lap_index)
);

-- Per-kilometer splits
CREATE TABLE IF NOT EXISTS activity_splits (
    activity_id INTEGER NOT NULL REFERENCES activities(id) ON DELETE CASCADE,
    split_index INTEGER NOT NULL,
    distance REAL NOT NULL DEFAULT 0,
    moving_time INTEGER NOT NULL DEFAULT 0,
    elapsed_time INTEGER NOT NULL DEFAULT 0,
    average_speed REAL NOT NULL DEFAULT 0,
    average_heartrate REAL,
    elevation_difference REAL NOT NULL DEFAULT 0,
    pace_zone INTEGER,
    PRIMARY KEY (activity_id, split_index)
);

-- Derived runner profile (one row per sport tag)
CREATE TABLE IF NOT EXISTS runner_profiles (
    sport_type TEXT PRIMARY KEY,
    easy_pace_ms REAL NOT NULL,
    threshold_pace_ms REAL NOT NULL,
    weekly_variability REAL NOT NULL,
    easy_hard_ratio REAL NOT NULL,
    confidence REAL NOT NULL,
    last_computed_at TEXT NOT NULL
);

-- Subjective feedback after an activity
CREATE TABLE IF NOT EXISTS reflections (
    activity_id INTEGER PRIMARY KEY,
    date TEXT NOT NULL,
    feeling_score INTEGER NOT NULL DEFAULT 3,
    pushed_too_hard INTEGER NOT NULL DEFAULT 0,
    would_repeat_today INTEGER NOT NULL DEFAULT 1
);

-- Upstream sync progress
CREATE TABLE IF NOT EXISTS sync_state (
    id TEXT PRIMARY KEY DEFAULT 'main',
    last_synced_at TEXT,
    last_activity_date TEXT,
    is_first_sync INTEGER NOT NULL DEFAULT 1,
    current_phase TEXT NOT NULL DEFAULT 'idle',
    total_activities INTEGER NOT NULL DEFAULT 0,
    synced_activities INTEGER NOT NULL DEFAULT 0,
    failed_activity_ids TEXT NOT NULL DEFAULT '[]'
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_activities_start_date ON activities(start_date);
CREATE INDEX IF NOT EXISTS idx_activities_sport_type ON activities(sport_type);
CREATE INDEX IF NOT EXISTS idx_reflections_date ON reflections(date);
"""
