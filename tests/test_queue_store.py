"""
Tests for QueueStore

Redis calls are mocked; the assertions pin the commands and keys used.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from matchmaker.exceptions import StoreError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.player import Player
from matchmaker.services.queue_store import QueueStore, build_queue_stores


def _raw(player_id: str, joined_at: int = 1000) -> str:
    return Player(player_id=player_id, mode=GameMode.PVP, joined_at=joined_at).to_json()


class TestQueueStore:
    """Tests for the per-mode Redis list."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.fixture
    def store(self, client):
        return QueueStore(client, GameMode.PVP, expiry_seconds=1800)

    @pytest.mark.asyncio
    async def test_enqueue_appends_to_tail_and_refreshes_ttl(self, store, client):
        player = Player(player_id="p1", mode=GameMode.PVP, joined_at=1000)

        await store.enqueue(player)

        client.rpush.assert_awaited_once_with("queue:PVP", player.to_json())
        client.expire.assert_awaited_once_with("queue:PVP", 1800)

    @pytest.mark.asyncio
    async def test_enqueue_failure_raises_store_error(self, store, client):
        client.rpush.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreError):
            await store.enqueue(Player.of("p1", GameMode.PVP))

    @pytest.mark.asyncio
    async def test_dequeue_pops_from_head(self, store, client):
        client.lpop.return_value = _raw("first")

        player = await store.dequeue_head()

        client.lpop.assert_awaited_once_with("queue:PVP")
        assert player.player_id == "first"

    @pytest.mark.asyncio
    async def test_dequeue_empty_queue_returns_none(self, store, client):
        client.lpop.return_value = None

        assert await store.dequeue_head() is None

    @pytest.mark.asyncio
    async def test_peek_first_reads_bounded_prefix(self, store, client):
        client.lrange.return_value = [_raw("a"), _raw("b")]

        players = await store.peek_first(2)

        client.lrange.assert_awaited_once_with("queue:PVP", 0, 1)
        assert [p.player_id for p in players] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_peek_zero_skips_redis(self, store, client):
        assert await store.peek_first(0) == []
        client.lrange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_size_degrades_to_zero(self, store, client):
        client.llen.side_effect = RedisConnectionError("down")

        assert await store.size() == 0

    @pytest.mark.asyncio
    async def test_position_is_one_based(self, store, client):
        client.lrange.return_value = [_raw("a"), _raw("b"), _raw("c")]

        assert await store.position_of("c", scan_limit=1000) == 3
        assert await store.position_of("z", scan_limit=1000) is None

    @pytest.mark.asyncio
    async def test_remove_one_removes_matching_entry(self, store, client):
        entry = _raw("b")
        client.lrange.return_value = [_raw("a"), entry]

        assert await store.remove_one("b") is True
        client.lrem.assert_awaited_once_with("queue:PVP", 1, entry)

    @pytest.mark.asyncio
    async def test_remove_one_is_idempotent(self, store, client):
        client.lrange.return_value = [_raw("a")]

        assert await store.remove_one("b") is False
        client.lrem.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_contains(self, store, client):
        client.lrange.return_value = [_raw("a")]

        assert await store.contains("a") is True
        assert await store.contains("b") is False

    @pytest.mark.asyncio
    async def test_contains_degrades_to_false(self, store, client):
        client.lrange.side_effect = RedisConnectionError("down")

        assert await store.contains("a") is False

    @pytest.mark.asyncio
    async def test_requeue_front_restores_original_order(self, store, client):
        first = Player(player_id="a", mode=GameMode.PVP, joined_at=1000)
        second = Player(player_id="b", mode=GameMode.PVP, joined_at=2000)

        await store.requeue_front([first, second])

        client.lpush.assert_awaited_once_with("queue:PVP", second.to_json(), first.to_json())
        client.expire.assert_awaited_once_with("queue:PVP", 1800)

    @pytest.mark.asyncio
    async def test_requeue_nothing_skips_redis(self, store, client):
        await store.requeue_front([])

        client.lpush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_clear_deletes_queue_key(self, store, client):
        await store.clear()

        client.delete.assert_awaited_once_with("queue:PVP")

    @pytest.mark.asyncio
    async def test_clear_failure_raises_store_error(self, store, client):
        client.delete.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreError) as exc_info:
            await store.clear()

        assert exc_info.value.operation == "clear"


class TestBuildQueueStores:

    def test_one_store_per_mode(self, settings):
        stores = build_queue_stores(MagicMock(), settings)

        assert set(stores) == set(GameMode)
        assert stores[GameMode.BOSS].key == "queue:BOSS"
        assert stores[GameMode.PVP].expiry_seconds == settings.queue_expiry_seconds
