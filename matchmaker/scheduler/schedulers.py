"""
Matchmaker Schedulers

APScheduler wrappers that drive the periodic jobs:
- MatchScheduler: matching every MATCHMAKING_INTERVAL_MS, stats every STATS_LOG_INTERVAL_MS
- CleanupScheduler: expiry sweep every CLEANUP_INTERVAL_MINUTES
"""

import logging
from typing import Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from matchmaker.config import Settings, get_settings
from matchmaker.scheduler.jobs import CleanupJob, MatchingJob, ScheduledJob, StatsJob


logger = logging.getLogger(__name__)


class _JobScheduler:
    """Owns one AsyncIOScheduler; start() and stop() are idempotent."""

    def __init__(self):
        self._scheduler: Optional[AsyncIOScheduler] = None

    def jobs(self) -> List[ScheduledJob]:
        raise NotImplementedError

    def _register(self, scheduler: AsyncIOScheduler):
        raise NotImplementedError

    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        if self.is_running():
            logger.warning(f"{type(self).__name__} already running")
            return
        scheduler = AsyncIOScheduler()
        self._register(scheduler)
        scheduler.start()
        self._scheduler = scheduler

    def stop(self):
        if not self.is_running():
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info(f"{type(self).__name__} stopped")

    def status(self) -> List[Dict]:
        return [job.status() for job in self.jobs()]


class MatchScheduler(_JobScheduler):
    def __init__(self, matching_job: MatchingJob, stats_job: StatsJob, settings: Optional[Settings] = None):
        super().__init__()
        self.matching_job = matching_job
        self.stats_job = stats_job
        self.settings = settings or get_settings()

    def jobs(self) -> List[ScheduledJob]:
        return [self.matching_job, self.stats_job]

    def _register(self, scheduler: AsyncIOScheduler):
        scheduler.add_job(
            self.matching_job.execute,
            "interval",
            seconds=self.settings.matchmaking_interval_ms / 1000,
            id="matching",
            name="Matching Job",
            max_instances=1,
            coalesce=True,  # Skip if previous run is still executing
        )

        scheduler.add_job(
            self.stats_job.execute,
            "interval",
            seconds=self.settings.stats_log_interval_ms / 1000,
            id="matchmaking_stats",
            name="Matchmaking Stats Job",
            max_instances=1,
            coalesce=True,
        )

    def start(self):
        super().start()
        logger.info(
            f"Match scheduler started: matching every {self.settings.matchmaking_interval_ms}ms, "
            f"stats every {self.settings.stats_log_interval_ms}ms"
        )


class CleanupScheduler(_JobScheduler):
    def __init__(self, cleanup_job: CleanupJob, settings: Optional[Settings] = None):
        super().__init__()
        self.cleanup_job = cleanup_job
        self.settings = settings or get_settings()

    def jobs(self) -> List[ScheduledJob]:
        return [self.cleanup_job]

    def _register(self, scheduler: AsyncIOScheduler):
        scheduler.add_job(
            self.cleanup_job.execute,
            "interval",
            minutes=self.settings.cleanup_interval_minutes,
            id="cleanup",
            name="Cleanup Job",
            max_instances=1,
            coalesce=True,
        )

    def start(self):
        super().start()
        logger.info(
            f"Cleanup scheduler started: every {self.settings.cleanup_interval_minutes} minutes"
        )

    async def force_cleanup(self) -> Dict[str, int]:
        """Run one sweep now, outside the schedule. Errors propagate to the caller."""
        logger.info("Forced cleanup requested")
        return await self.cleanup_job.sweep()
