"""
SportBoard engine.

Local training intelligence for running activities: runner profile,
consistency, fatigue, efficiency trend, per-run diagnosis, weekly
narrative and a byte-stable web JSON export.
"""

__version__ = "0.1.0"

from .clock import Clock, FixedClock, MadridCalendar, SystemClock
from .db.database import ActivityDatabase
from .export.web_json import export_activity_as_web_json
from .services.dashboard import IntelligenceEngine

__all__ = [
    "__version__",
    "Clock",
    "FixedClock",
    "MadridCalendar",
    "SystemClock",
    "ActivityDatabase",
    "IntelligenceEngine",
    "export_activity_as_web_json",
]
