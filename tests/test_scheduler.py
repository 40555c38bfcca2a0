"""
Tests for scheduled jobs and schedulers.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import LockNotOwnedError

from matchmaker.exceptions import StoreError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.matchmaking import MatchmakingStats
from matchmaker.models.player import Player
from matchmaker.models.room_status import RoomStatus
from matchmaker.scheduler.jobs import CleanupJob, MatchingJob, ScheduledJob, StatsJob
from matchmaker.scheduler.schedulers import CleanupScheduler, MatchScheduler


NOW = 10_000_000_000
MINUTE = 60 * 1000
HOUR = 60 * MINUTE


def _lock_client(acquired=True):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=acquired)
    lock.reacquire = AsyncMock(return_value=True)
    lock.release = AsyncMock()
    client = MagicMock()
    client.lock.return_value = lock
    return client, lock


class TestScheduledJob:
    """Tests for the job base class."""

    @pytest.mark.asyncio
    async def test_failure_is_counted_not_raised(self):
        class Failing(ScheduledJob):
            async def _run(self):
                raise RuntimeError("boom")

        job = Failing("Failing")
        await job.execute()

        assert job.execution_count == 1
        assert job.failure_count == 1
        assert job.last_error == "boom"
        assert job.status()["health"] == "healthy"

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self):
        release = asyncio.Event()

        class Slow(ScheduledJob):
            async def _run(self):
                await release.wait()

        job = Slow("Slow")
        first = asyncio.create_task(job.execute())
        await asyncio.sleep(0)

        await job.execute()
        release.set()
        await first

        assert job.execution_count == 1
        assert job.skipped_count == 1
        assert job.is_running is False


class TestMatchingJob:
    """Tests for the per-tick matching job."""

    @pytest.mark.asyncio
    async def test_failure_in_one_mode_does_not_stop_the_other(self, settings):
        async def perform(mode, on_room_formed=None):
            if mode == GameMode.PVP:
                raise RuntimeError("pvp broke")
            return [MagicMock()]

        service = MagicMock()
        service.perform_matching = AsyncMock(side_effect=perform)
        client, _ = _lock_client()
        job = MatchingJob(service, client, settings)

        await job.execute()

        modes = [c.args[0] for c in service.perform_matching.await_args_list]
        assert modes == [GameMode.PVP, GameMode.BOSS]
        assert job.last_result == {"PVP": 0, "BOSS": 1}
        assert job.mode_failures[GameMode.PVP] == 1
        assert job.failure_count == 0

    @pytest.mark.asyncio
    async def test_mode_is_skipped_when_lock_is_held(self, settings):
        service = MagicMock()
        service.perform_matching = AsyncMock(return_value=[])
        client, lock = _lock_client(acquired=False)
        job = MatchingJob(service, client, settings)

        await job.execute()

        service.perform_matching.assert_not_awaited()
        client.lock.assert_any_call(
            "matchmaking:lock:PVP",
            timeout=settings.matching_lock_ttl_ms / 1000,
            blocking=False,
            thread_local=False,
        )
        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_is_released_after_each_mode(self, settings):
        service = MagicMock()
        service.perform_matching = AsyncMock(return_value=[])
        client, lock = _lock_client()
        job = MatchingJob(service, client, settings)

        await job.execute()

        client.lock.assert_any_call(
            "matchmaking:lock:BOSS",
            timeout=settings.matching_lock_ttl_ms / 1000,
            blocking=False,
            thread_local=False,
        )
        assert lock.release.await_count == 2

    @pytest.mark.asyncio
    async def test_lock_is_renewed_for_every_formed_room(self, settings):
        async def perform(mode, on_room_formed=None):
            rooms = [MagicMock(), MagicMock(), MagicMock()]
            for room in rooms:
                await on_room_formed(room)
            return rooms

        service = MagicMock()
        service.perform_matching = AsyncMock(side_effect=perform)
        client, lock = _lock_client()
        job = MatchingJob(service, client, settings)

        await job.execute()

        assert lock.reacquire.await_count == 6
        assert job.last_result == {"PVP": 3, "BOSS": 3}

    @pytest.mark.asyncio
    async def test_lost_lock_on_release_is_logged(self, settings, caplog):
        service = MagicMock()
        service.perform_matching = AsyncMock(return_value=[MagicMock()])
        client, lock = _lock_client()
        lock.release.side_effect = LockNotOwnedError("expired")
        job = MatchingJob(service, client, settings)

        with caplog.at_level("WARNING"):
            await job.execute()

        assert job.last_result == {"PVP": 1, "BOSS": 1}
        assert "lock expired before release" in caplog.text

    @pytest.mark.asyncio
    async def test_lock_disabled_matches_directly(self, settings):
        settings.matching_lock_enabled = False
        service = MagicMock()
        service.perform_matching = AsyncMock(return_value=[])
        client = MagicMock()
        job = MatchingJob(service, client, settings)

        await job.execute()

        assert service.perform_matching.await_count == 2
        client.lock.assert_not_called()


class TestStatsJob:

    @pytest.mark.asyncio
    async def test_logs_stats(self, caplog):
        service = MagicMock()
        service.get_stats = AsyncMock(
            return_value=MatchmakingStats(pvp_queue_size=3, boss_queue_size=1, total_rooms=2)
        )
        job = StatsJob(service)

        with caplog.at_level("INFO"):
            await job.execute()

        assert "pvpQueue=3" in caplog.text
        assert job.last_result["totalRooms"] == 2


class TestCleanupJob:
    """Tests for the expiry sweep."""

    @pytest.fixture
    def job(self, queue_stores, room_service, settings):
        return CleanupJob(queue_stores, room_service, settings)

    async def _room(self, room_store, status, players, age_ms, mode=GameMode.BOSS):
        room = GameRoom.create(mode, 4)
        for player_id in players:
            room.add_player(player_id)
        room.status = status
        room.created_at = NOW - age_ms
        await room_store.save(room)
        return room

    @pytest.mark.asyncio
    async def test_expired_queue_players_are_removed(self, job, queue_stores):
        queue = queue_stores[GameMode.PVP]
        await queue.enqueue(Player(player_id="old", mode=GameMode.PVP, joined_at=NOW - 31 * MINUTE))
        await queue.enqueue(Player(player_id="fresh", mode=GameMode.PVP, joined_at=NOW - 5 * MINUTE))

        with patch("matchmaker.scheduler.jobs.now_ms", return_value=NOW):
            stats = await job.sweep()

        assert stats["expired_queue_players"] == 1
        assert queue.player_ids() == ["fresh"]

    @pytest.mark.asyncio
    async def test_stale_rooms_are_reaped(self, job, room_store):
        finished = await self._room(room_store, RoomStatus.FINISHED, ["a", "b"], 3 * HOUR)
        abandoned = await self._room(room_store, RoomStatus.FORMING, ["c"], 31 * MINUTE)
        never_started = await self._room(room_store, RoomStatus.READY, ["d", "e"], 3 * HOUR)
        empty = await self._room(room_store, RoomStatus.FORMING, [], 1 * MINUTE)
        young_finished = await self._room(room_store, RoomStatus.FINISHED, ["f", "g"], 1 * HOUR)
        in_progress = await self._room(room_store, RoomStatus.IN_PROGRESS, ["h", "i"], 5 * HOUR)

        with patch("matchmaker.scheduler.jobs.now_ms", return_value=NOW):
            stats = await job.sweep()

        for room in (finished, abandoned, never_started, empty):
            assert await room_store.find_by_id(room.room_id) is None
        for room in (young_finished, in_progress):
            assert await room_store.find_by_id(room.room_id) is not None
        assert stats["expired_rooms"] == 2
        assert stats["abandoned_rooms"] == 2
        assert await room_store.player_room_id("c") is None

    @pytest.mark.asyncio
    async def test_young_forming_room_is_kept(self, job, room_store):
        room = await self._room(room_store, RoomStatus.FORMING, ["a"], 10 * MINUTE)

        with patch("matchmaker.scheduler.jobs.now_ms", return_value=NOW):
            await job.sweep()

        assert await room_store.find_by_id(room.room_id) is not None

    @pytest.mark.asyncio
    async def test_one_failing_room_does_not_stop_the_sweep(self, job, room_store, room_service):
        first = await self._room(room_store, RoomStatus.FINISHED, ["a", "b"], 3 * HOUR)
        second = await self._room(room_store, RoomStatus.FINISHED, ["c", "d"], 3 * HOUR)
        real_delete = room_service.delete_room

        async def flaky_delete(room_id):
            if room_id == min(first.room_id, second.room_id):
                raise RuntimeError("delete failed")
            await real_delete(room_id)

        room_service.delete_room = flaky_delete

        with patch("matchmaker.scheduler.jobs.now_ms", return_value=NOW):
            stats = await job.sweep()

        assert stats["expired_rooms"] == 1
        assert await room_store.total_rooms() == 1

    @pytest.mark.asyncio
    async def test_stale_index_entries_are_pruned(self, job, room_store):
        room_store.index.add("room_ffffffff")

        stats = await job.sweep()

        assert stats["pruned_index_entries"] == 1
        assert await room_store.total_rooms() == 0

    @pytest.mark.asyncio
    async def test_room_listing_failure_still_finishes_sweep(self, job, room_store, queue_stores):
        room_store.list_all = AsyncMock(side_effect=StoreError("list_all", "down"))
        room_store.index.add("room_ffffffff")
        await queue_stores[GameMode.PVP].enqueue(
            Player(player_id="old", mode=GameMode.PVP, joined_at=NOW - 31 * MINUTE)
        )

        with patch("matchmaker.scheduler.jobs.now_ms", return_value=NOW):
            stats = await job.sweep()

        assert stats["expired_rooms"] == 0
        assert stats["abandoned_rooms"] == 0
        assert stats["expired_queue_players"] == 1
        assert stats["pruned_index_entries"] == 1


class TestSchedulers:
    """Tests for scheduler start/stop."""

    @pytest.mark.asyncio
    async def test_match_scheduler_registers_jobs(self, settings):
        service = MagicMock()
        scheduler = MatchScheduler(
            MatchingJob(service, AsyncMock(), settings), StatsJob(service), settings
        )

        scheduler.start()
        try:
            assert scheduler.is_running()
            job_ids = {job.id for job in scheduler._scheduler.get_jobs()}
            assert job_ids == {"matching", "matchmaking_stats"}
        finally:
            scheduler.stop()

        assert scheduler.is_running() is False

    @pytest.mark.asyncio
    async def test_start_twice_is_harmless(self, settings):
        scheduler = CleanupScheduler(CleanupJob({}, MagicMock(), settings), settings)

        scheduler.start()
        first = scheduler._scheduler
        scheduler.start()

        assert scheduler._scheduler is first
        scheduler.stop()
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_force_cleanup_runs_sweep(self, settings):
        job = MagicMock()
        job.sweep = AsyncMock(return_value={"expired_rooms": 1})
        scheduler = CleanupScheduler(job, settings)

        assert await scheduler.force_cleanup() == {"expired_rooms": 1}
        job.sweep.assert_awaited_once()
