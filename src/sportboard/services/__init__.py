"""Training intelligence services."""

from .bad_run import BadRunDetector, BadRunInsight, BadRunSeverity
from .base import ActivityRepository, BaseService
from .consistency import ConsistencyBreakdown, ConsistencyService
from .dashboard import (
    ActivityInsights,
    DashboardStats,
    DashboardStatsService,
    IntelligenceEngine,
    IntelligenceReport,
)
from .data_quality import DataQuality
from .efficiency_trend import EfficiencyTrend, EfficiencyTrendService, TrendDirection
from .fatigue import FatigueDiagnosis, FatigueLevel, FatigueService
from .next_workout import NextWorkoutService, NextWorkoutSuggestion
from .run_classifier import (
    RunClassification,
    RunClassifier,
    RunSessionType,
    get_run_classifier,
)
from .runner_profile import ProfileMetrics, RunnerProfileService
from .silent_alerts import AlertSeverity, SilentAlert, SilentAlertsService
from .simulator import SimulatorInput, SimulatorResult, SimulatorService, simulate
from .suspicious_peak import SuspiciousPeakDetector, SuspiciousPeakResult
from .week_comparator import (
    WeekComparatorService,
    WeekComparison,
    WeekEquivalenceCriterion,
    WeekSummary,
)
from .weekly_narrative import WeeklyNarrativeService

__all__ = [
    "ActivityRepository",
    "BaseService",
    "DataQuality",
    "RunClassification",
    "RunClassifier",
    "RunSessionType",
    "get_run_classifier",
    "ProfileMetrics",
    "RunnerProfileService",
    "ConsistencyBreakdown",
    "ConsistencyService",
    "FatigueDiagnosis",
    "FatigueLevel",
    "FatigueService",
    "EfficiencyTrend",
    "EfficiencyTrendService",
    "TrendDirection",
    "BadRunDetector",
    "BadRunInsight",
    "BadRunSeverity",
    "SuspiciousPeakDetector",
    "SuspiciousPeakResult",
    "AlertSeverity",
    "SilentAlert",
    "SilentAlertsService",
    "NextWorkoutService",
    "NextWorkoutSuggestion",
    "WeeklyNarrativeService",
    "WeekComparatorService",
    "WeekComparison",
    "WeekEquivalenceCriterion",
    "WeekSummary",
    "SimulatorInput",
    "SimulatorResult",
    "SimulatorService",
    "simulate",
    "ActivityInsights",
    "DashboardStats",
    "DashboardStatsService",
    "IntelligenceEngine",
    "IntelligenceReport",
]
