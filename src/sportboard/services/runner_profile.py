"""
Runner profile service.

Derives the per-athlete pace references (easy pace, threshold pace, weekly
variability, easy/hard ratio) from the local history and persists them as a
single row per sport tag with a delete-then-insert protocol.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..metrics.stats import coefficient_of_variation, median
from ..models.activity import PROFILE_SPORT_TYPE, Activity, RunnerProfile
from .base import BaseService, usable_runs


@dataclass
class ProfileMetrics:
    """Raw profile numbers before persistence."""

    easy_pace_ms: float
    threshold_pace_ms: float
    weekly_variability: float
    easy_hard_ratio: float
    confidence: float
    sample_count: int


class RunnerProfileService(BaseService):
    """Computes, stores and refreshes the runner profile."""

    MIN_RUN_ACTIVITIES = 5
    MIN_RUN_SECONDS = 10 * 60
    EASY_DURATION_MIN = (25.0, 95.0)
    EASY_MAX_SPEED_MS = 5.0
    THRESHOLD_DURATION_MIN = (20.0, 65.0)
    THRESHOLD_FALLBACK_FACTOR = 0.85
    EASY_RATIO_FACTOR = 0.98
    FULL_CONFIDENCE_SAMPLES = 30
    RECOMPUTE_INTERVAL_DAYS = 7
    FETCH_LIMIT = 1000

    def __init__(self, *args, recompute_interval_days: Optional[int] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.recompute_interval_days = recompute_interval_days or self.RECOMPUTE_INTERVAL_DAYS

    def qualifying_runs(self, activities: List[Activity]) -> List[Activity]:
        """Running activities of at least 10 minutes with a positive speed."""
        return [
            a for a in usable_runs(activities, self._logger)
            if a.moving_time >= self.MIN_RUN_SECONDS and a.average_speed > 0
        ]

    def compute_from_activities(self, activities: List[Activity]) -> Optional[ProfileMetrics]:
        """
        Compute profile numbers from a list of activities.

        Args:
            activities: Activities of any sport (non-runs are ignored)

        Returns:
            ProfileMetrics, or None with fewer than 5 qualifying runs
        """
        runs = self.qualifying_runs(activities)
        if len(runs) < self.MIN_RUN_ACTIVITIES:
            return None

        easy_low, easy_high = self.EASY_DURATION_MIN
        easy_paces = [
            a.average_speed for a in runs
            if easy_low <= a.duration_minutes <= easy_high and a.average_speed < self.EASY_MAX_SPEED_MS
        ]
        easy_pace_ms = median(easy_paces) or 0.0

        th_low, th_high = self.THRESHOLD_DURATION_MIN
        threshold_samples = [
            a.average_speed for a in runs if th_low <= a.duration_minutes <= th_high
        ]
        if threshold_samples:
            threshold_pace_ms = max(threshold_samples)
        else:
            threshold_pace_ms = easy_pace_ms * self.THRESHOLD_FALLBACK_FACTOR

        weekly_km: Dict[datetime, float] = defaultdict(float)
        for a in runs:
            weekly_km[self.calendar.start_of_week(a.start_date)] += a.distance / 1000
        weekly_variability = coefficient_of_variation(list(weekly_km.values()))

        easy_limit = easy_pace_ms * self.EASY_RATIO_FACTOR
        total_time = sum(a.moving_time for a in runs)
        easy_time = sum(a.moving_time for a in runs if a.average_speed <= easy_limit)
        easy_hard_ratio = easy_time / total_time if total_time > 0 else 0.5

        confidence = min(1.0, len(runs) / self.FULL_CONFIDENCE_SAMPLES)
        if not easy_paces:
            confidence *= 0.5

        return ProfileMetrics(
            easy_pace_ms=easy_pace_ms,
            threshold_pace_ms=threshold_pace_ms,
            weekly_variability=weekly_variability,
            easy_hard_ratio=easy_hard_ratio,
            confidence=confidence,
            sample_count=len(runs),
        )

    def compute_and_save(self, sport_type: str = PROFILE_SPORT_TYPE) -> Optional[RunnerProfile]:
        """
        Recompute the profile from the repository and persist it.

        With too few runs any stored profile is deleted and None is returned.
        """
        activities = self.repository.fetch_running_activities(limit=self.FETCH_LIMIT, order="desc")
        metrics = self.compute_from_activities(activities)

        self.repository.delete_profiles(sport_type)
        if metrics is None:
            self.repository.save()
            self._logger.info(
                f"Not enough runs for a {sport_type} profile; stored profile removed"
            )
            return None

        profile = RunnerProfile(
            easy_pace_ms=metrics.easy_pace_ms,
            threshold_pace_ms=metrics.threshold_pace_ms,
            weekly_variability=metrics.weekly_variability,
            easy_hard_ratio=metrics.easy_hard_ratio,
            confidence=metrics.confidence,
            last_computed_at=self.now(),
            sport_type=sport_type,
        )
        self.repository.insert_profile(profile)
        self.repository.save()
        self._logger.info(
            f"Runner profile recomputed from {metrics.sample_count} runs "
            f"(confidence {metrics.confidence:.2f})"
        )
        return profile

    def fetch_profile(self, sport_type: str = PROFILE_SPORT_TYPE) -> Optional[RunnerProfile]:
        return self.repository.fetch_profile(sport_type)

    def should_recompute(self, sport_type: str = PROFILE_SPORT_TYPE) -> bool:
        """True when no profile exists or the stored one is at least 7 days old."""
        profile = self.fetch_profile(sport_type)
        if profile is None:
            return True
        elapsed = self.now() - profile.last_computed_at
        return elapsed >= timedelta(days=self.recompute_interval_days)

    def ensure_profile(self, sport_type: str = PROFILE_SPORT_TYPE) -> Optional[RunnerProfile]:
        """Recompute when due, then return the stored profile."""
        if self.should_recompute(sport_type):
            return self.compute_and_save(sport_type)
        return self.fetch_profile(sport_type)
