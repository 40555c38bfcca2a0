"""
Scheduled Jobs for the Matchmaker

Periodic job implementations with:
- Per-tick error isolation and logging
- Job status tracking
- Overlap protection (a tick still running makes the next one skip)
"""

import logging
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import LockError

from matchmaker.config import Settings, get_settings
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.room_status import RoomStatus
from matchmaker.services.matchmaking_service import MatchmakingService
from matchmaker.services.queue_store import QueueStore
from matchmaker.services.redis_keys import RedisKeys
from matchmaker.services.room_service import RoomService
from matchmaker.utils.timezone_utils import now_ms, utc_now


logger = logging.getLogger(__name__)


class ScheduledJob:
    """Base class for scheduled jobs with error handling and logging."""

    def __init__(self, name: str):
        self.name = name
        self.execution_count = 0
        self.failure_count = 0
        self.skipped_count = 0
        self.last_execution = None
        self.last_error: Optional[str] = None
        self.last_result: Any = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def execute(self):
        """Execute the job with error handling and metrics."""
        if self._running:
            self.skipped_count += 1
            logger.debug(f"[{self.name}] Previous tick still running, skipping")
            return

        self._running = True
        self.execution_count += 1
        start_time = utc_now()

        try:
            self.last_result = await self._run()
            self.last_execution = utc_now()
            duration = (self.last_execution - start_time).total_seconds()
            logger.debug(f"[{self.name}] Completed in {duration:.2f}s")

        except Exception as e:
            self.failure_count += 1
            self.last_error = str(e)
            logger.error(f"[{self.name}] Failed: {e}", exc_info=True)

            if self.failure_count >= 3:
                self._alert_failure(e)
        finally:
            self._running = False

    async def _run(self):
        """Override this method in subclasses."""
        raise NotImplementedError

    def _alert_failure(self, error: Exception):
        logger.critical(
            f"[{self.name}] CRITICAL: Failed {self.failure_count} times. "
            f"Last error: {error}"
        )

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "execution_count": self.execution_count,
            "failure_count": self.failure_count,
            "skipped_count": self.skipped_count,
            "last_execution": (
                self.last_execution.isoformat() if self.last_execution else None
            ),
            "last_error": self.last_error,
            "running": self._running,
            "health": "healthy" if self.failure_count < 3 else "unhealthy",
        }


class MatchingJob(ScheduledJob):
    """
    Run the matching algorithm for every mode.

    Frequency: MATCHMAKING_INTERVAL_MS
    Modes are matched in sequence; a failure in one mode is logged and the
    next mode still runs. Each mode is matched under an advisory Redis lock
    so two scheduler processes never match the same mode concurrently.
    """

    def __init__(
        self,
        matchmaking_service: MatchmakingService,
        client: redis.Redis,
        settings: Optional[Settings] = None
    ):
        super().__init__("Matching")
        self.matchmaking_service = matchmaking_service
        self.client = client
        self.settings = settings or get_settings()
        self.mode_failures: Dict[GameMode, int] = {mode: 0 for mode in GameMode}

    async def _run(self) -> Dict[str, int]:
        formed = {}
        for mode in GameMode:
            try:
                rooms = await self._match_mode(mode)
                formed[mode.value] = len(rooms)
            except Exception as e:
                self.mode_failures[mode] += 1
                formed[mode.value] = 0
                logger.error(f"[{self.name}] Matching failed for {mode.value}: {e}", exc_info=True)
        return formed

    async def _match_mode(self, mode: GameMode) -> List[GameRoom]:
        if not self.settings.matching_lock_enabled:
            return await self.matchmaking_service.perform_matching(mode)

        lock = self.client.lock(
            RedisKeys.matching_lock(mode),
            timeout=self.settings.matching_lock_ttl_ms / 1000,
            blocking=False,
            thread_local=False,
        )
        if not await lock.acquire():
            logger.debug(f"[{self.name}] {mode.value} is being matched elsewhere, skipping")
            return []

        async def renew_lock(room: GameRoom):
            # Every formed room restarts the TTL; raises if the lock was lost
            await lock.reacquire()

        try:
            return await self.matchmaking_service.perform_matching(mode, on_room_formed=renew_lock)
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.warning(f"[{self.name}] {mode.value} matching lock expired before release: {e}")


class StatsJob(ScheduledJob):
    """
    Log aggregate queue and room counts.

    Frequency: STATS_LOG_INTERVAL_MS
    Read-only.
    """

    def __init__(self, matchmaking_service: MatchmakingService):
        super().__init__("Stats")
        self.matchmaking_service = matchmaking_service

    async def _run(self) -> Dict[str, int]:
        stats = await self.matchmaking_service.get_stats()
        logger.info(
            f"[{self.name}] Matchmaking stats - pvpQueue={stats.pvp_queue_size} "
            f"bossQueue={stats.boss_queue_size} totalRooms={stats.total_rooms}"
        )
        return stats.to_dict()


class CleanupJob(ScheduledJob):
    """
    Reap expired queue entries and stale rooms.

    Frequency: CLEANUP_INTERVAL_MINUTES

    Queue: players waiting longer than QUEUE_EXPIRY_MINUTES are removed
    (only the first QUEUE_SCAN_LIMIT entries of each queue are inspected).

    Rooms, each rule checked independently, room deleted once:
    - FINISHED and older than ROOM_EXPIRY_HOURS
    - FORMING, older than ABANDONED_ROOM_MINUTES and below the minimum
    - READY and older than ROOM_EXPIRY_HOURS (never started)
    - no members at all
    """

    def __init__(
        self,
        queue_stores: Dict[GameMode, QueueStore],
        room_service: RoomService,
        settings: Optional[Settings] = None
    ):
        super().__init__("Cleanup")
        self.queue_stores = queue_stores
        self.room_service = room_service
        self.settings = settings or get_settings()

    async def _run(self) -> Dict[str, int]:
        return await self.sweep()

    async def sweep(self) -> Dict[str, int]:
        logger.info(f"[{self.name}] Starting cleanup of expired data")

        stats = {
            "expired_queue_players": 0,
            "expired_rooms": 0,
            "abandoned_rooms": 0,
            "pruned_index_entries": 0,
        }

        for mode in GameMode:
            stats["expired_queue_players"] += await self.clean_expired_queue_players(mode)

        room_stats = await self.clean_expired_rooms()
        stats["expired_rooms"] = room_stats["expired_rooms"]
        stats["abandoned_rooms"] = room_stats["abandoned_rooms"]

        stats["pruned_index_entries"] = await self.room_service.room_store.prune_index()

        logger.info(f"[{self.name}] Cleanup completed: {stats}")
        return stats

    async def clean_expired_queue_players(self, mode: GameMode) -> int:
        """Remove players whose wait exceeds the queue expiry horizon."""
        queue = self.queue_stores[mode]
        max_wait_ms = self.settings.queue_expiry_seconds * 1000

        try:
            players = await queue.peek_first(self.settings.queue_scan_limit)
        except Exception as e:
            logger.error(f"[{self.name}] Error reading {mode.value} queue: {e}")
            return 0

        removed_count = 0
        now = now_ms()
        for player in players:
            wait_time = player.wait_time_ms(now)
            if wait_time <= max_wait_ms:
                continue
            if await queue.remove_one(player.player_id):
                removed_count += 1
                logger.info(
                    f"[{self.name}] Player {player.player_id} removed from {mode.value} queue "
                    f"after {wait_time // 60000} minutes"
                )

        if removed_count > 0:
            logger.info(f"[{self.name}] Removed {removed_count} expired players from {mode.value} queue")
        return removed_count

    def deletion_reasons(self, room: GameRoom, now: int) -> List[str]:
        """Every reaping rule the room matches; empty list means keep it."""
        age = room.age_ms(now)
        max_room_age_ms = self.settings.room_expiry_seconds * 1000
        abandoned_ms = self.settings.abandoned_room_seconds * 1000

        reasons = []
        if room.status == RoomStatus.FINISHED and age > max_room_age_ms:
            reasons.append("finished")
        if (
            room.status == RoomStatus.FORMING
            and age > abandoned_ms
            and room.current_players < self.settings.min_players_for_room
        ):
            reasons.append("abandoned")
        if room.status == RoomStatus.READY and age > max_room_age_ms:
            reasons.append("never_started")
        if room.current_players == 0:
            reasons.append("empty")
        return reasons

    async def clean_expired_rooms(self) -> Dict[str, int]:
        expired_count = 0
        abandoned_count = 0
        now = now_ms()

        try:
            rooms = await self.room_service.list_rooms()
        except Exception as e:
            logger.error(f"[{self.name}] Error listing rooms: {e}")
            return {"expired_rooms": 0, "abandoned_rooms": 0}

        for room in rooms:
            reasons = self.deletion_reasons(room, now)
            if not reasons:
                continue
            try:
                await self.room_service.delete_room(room.room_id)
            except Exception as e:
                logger.error(f"[{self.name}] Failed to delete room {room.room_id}: {e}")
                continue

            if "finished" in reasons or "never_started" in reasons:
                expired_count += 1
            else:
                abandoned_count += 1
            logger.info(
                f"[{self.name}] Room {room.room_id} deleted ({', '.join(reasons)}): "
                f"status={room.status.value} age={room.age_ms(now) // 60000}m "
                f"players={room.current_players}"
            )

        return {"expired_rooms": expired_count, "abandoned_rooms": abandoned_count}
