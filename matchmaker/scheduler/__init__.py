"""
Scheduler Package

Periodic matching, stats logging and cleanup with job monitoring.
"""

from matchmaker.scheduler.jobs import (
    ScheduledJob,
    MatchingJob,
    StatsJob,
    CleanupJob,
)
from matchmaker.scheduler.schedulers import MatchScheduler, CleanupScheduler

__all__ = [
    "ScheduledJob",
    "MatchingJob",
    "StatsJob",
    "CleanupJob",
    "MatchScheduler",
    "CleanupScheduler",
]
