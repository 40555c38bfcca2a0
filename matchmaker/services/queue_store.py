"""Queue Store - per-mode FIFO of waiting players in a Redis list."""

import logging
from typing import Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from matchmaker.config import Settings, get_settings
from matchmaker.exceptions import StoreError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.player import Player
from matchmaker.services.redis_keys import RedisKeys


logger = logging.getLogger(__name__)


class QueueStore:
    """
    FIFO queue for a single game mode.

    Players are appended to the tail and popped from the head. The whole
    list shares one TTL which is refreshed on every append, so an idle
    queue disappears after QUEUE_EXPIRY_MINUTES.

    Each step is its own round trip; nothing here is transactional.
    """

    def __init__(self, client: redis.Redis, mode: GameMode, expiry_seconds: int):
        self.client = client
        self.mode = mode
        self.key = RedisKeys.mode_queue(mode)
        self.expiry_seconds = expiry_seconds

    async def enqueue(self, player: Player) -> None:
        """Append a player to the tail and refresh the queue TTL."""
        try:
            await self.client.rpush(self.key, player.to_json())
            await self.client.expire(self.key, self.expiry_seconds)
            logger.debug(f"Player {player.player_id} added to {self.mode.value} queue")
        except RedisError as e:
            logger.error(f"Failed to enqueue {player.player_id} on {self.mode.value}: {e}")
            raise StoreError("enqueue", str(e)) from e

    async def dequeue_head(self) -> Optional[Player]:
        """Pop the oldest player, or None if the queue is empty."""
        try:
            raw = await self.client.lpop(self.key)
        except RedisError as e:
            logger.error(f"Failed to pop from {self.mode.value} queue: {e}")
            raise StoreError("dequeue_head", str(e)) from e
        if not raw:
            return None
        return Player.from_json(raw)

    async def requeue_front(self, players: List[Player]) -> None:
        """Push players back onto the head, keeping their original order."""
        if not players:
            return
        try:
            # LPUSH inserts each value at the head in turn
            await self.client.lpush(self.key, *[player.to_json() for player in reversed(players)])
            await self.client.expire(self.key, self.expiry_seconds)
            logger.debug(f"{len(players)} player(s) returned to the head of the {self.mode.value} queue")
        except RedisError as e:
            logger.error(f"Failed to requeue players on {self.mode.value}: {e}")
            raise StoreError("requeue_front", str(e)) from e

    async def peek_first(self, count: int) -> List[Player]:
        """Up to ``count`` players from the head, in FIFO order, without removing them."""
        if count <= 0:
            return []
        try:
            raw_players = await self.client.lrange(self.key, 0, count - 1)
        except RedisError as e:
            logger.error(f"Failed to read {self.mode.value} queue: {e}")
            raise StoreError("peek_first", str(e)) from e
        return [Player.from_json(raw) for raw in raw_players]

    async def size(self) -> int:
        """Current length; 0 when the key expired or Redis is unreachable."""
        try:
            return await self.client.llen(self.key) or 0
        except RedisError as e:
            logger.error(f"Failed to read {self.mode.value} queue size: {e}")
            return 0

    async def contains(self, player_id: str) -> bool:
        try:
            raw_players = await self.client.lrange(self.key, 0, -1)
        except RedisError as e:
            logger.error(f"Failed to scan {self.mode.value} queue for {player_id}: {e}")
            return False
        return any(Player.from_json(raw).player_id == player_id for raw in raw_players)

    async def position_of(self, player_id: str, scan_limit: int) -> Optional[int]:
        """1-based position within the first ``scan_limit`` entries, else None."""
        players = await self.peek_first(scan_limit)
        for index, player in enumerate(players):
            if player.player_id == player_id:
                return index + 1
        return None

    async def remove_one(self, player_id: str) -> bool:
        """
        Remove the first entry for ``player_id`` scanning from the head.

        Idempotent: returns False when the player is not queued.
        """
        try:
            raw_players = await self.client.lrange(self.key, 0, -1)
            for raw in raw_players:
                if Player.from_json(raw).player_id == player_id:
                    await self.client.lrem(self.key, 1, raw)
                    logger.debug(f"Player {player_id} removed from {self.mode.value} queue")
                    return True
            return False
        except RedisError as e:
            logger.error(f"Failed to remove {player_id} from {self.mode.value} queue: {e}")
            return False

    async def clear(self) -> None:
        try:
            await self.client.delete(self.key)
            logger.info(f"{self.mode.value} queue cleared")
        except RedisError as e:
            logger.error(f"Failed to clear {self.mode.value} queue: {e}")
            raise StoreError("clear", str(e)) from e


def build_queue_stores(client: redis.Redis, settings: Optional[Settings] = None) -> Dict[GameMode, QueueStore]:
    """One independent QueueStore per game mode."""
    settings = settings or get_settings()
    return {
        mode: QueueStore(client, mode, settings.queue_expiry_seconds)
        for mode in GameMode
    }
