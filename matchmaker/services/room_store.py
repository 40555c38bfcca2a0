"""Room Store - room records, the global room index and player pointers in Redis."""

import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from matchmaker.config import Settings, get_settings
from matchmaker.exceptions import StoreError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.room_status import RoomStatus
from matchmaker.services.redis_keys import RedisKeys


logger = logging.getLogger(__name__)


class RoomStore:
    """
    Persistence for game rooms.

    Every save writes three things, each with the room TTL:
    the room record, its id in the global index and a pointer from every
    member to the room. Deletion removes all three. The writes are separate
    round trips, so a crash in between can leave them briefly out of step.
    """

    def __init__(self, client: redis.Redis, settings: Optional[Settings] = None):
        self.client = client
        settings = settings or get_settings()
        self.ttl_seconds = settings.room_expiry_seconds

    async def save(self, room: GameRoom) -> None:
        """Upsert the room and refresh index and member pointers."""
        try:
            await self.client.setex(RedisKeys.room(room.room_id), self.ttl_seconds, room.to_json())
            await self.client.sadd(RedisKeys.room_index(), room.room_id)
            await self.client.expire(RedisKeys.room_index(), self.ttl_seconds)

            for player_id in room.players:
                await self.client.setex(
                    RedisKeys.player_room(player_id),
                    self.ttl_seconds,
                    room.room_id
                )
            logger.debug(f"Room {room.room_id} saved")
        except RedisError as e:
            logger.error(f"Failed to save room {room.room_id}: {e}")
            raise StoreError("save", str(e)) from e

    async def find_by_id(self, room_id: str) -> Optional[GameRoom]:
        try:
            raw = await self.client.get(RedisKeys.room(room_id))
        except RedisError as e:
            logger.error(f"Failed to load room {room_id}: {e}")
            raise StoreError("find_by_id", str(e)) from e
        if not raw:
            return None
        return GameRoom.from_json(raw)

    async def exists(self, room_id: str) -> bool:
        """Existence check without deserializing the record."""
        try:
            return await self.client.exists(RedisKeys.room(room_id)) == 1
        except RedisError as e:
            logger.error(f"Failed to check room {room_id}: {e}")
            return False

    async def delete(self, room_id: str) -> None:
        """Remove member pointers, the record and the index entry. No-op for unknown ids."""
        room = await self.find_by_id(room_id)
        try:
            if room:
                for player_id in room.players:
                    await self.client.delete(RedisKeys.player_room(player_id))
            await self.client.delete(RedisKeys.room(room_id))
            await self.client.srem(RedisKeys.room_index(), room_id)
            logger.debug(f"Room {room_id} deleted")
        except RedisError as e:
            logger.error(f"Failed to delete room {room_id}: {e}")
            raise StoreError("delete", str(e)) from e

    async def update_status(self, room_id: str, status: RoomStatus) -> Optional[GameRoom]:
        """Read-modify-write of the status field. Returns None for unknown ids."""
        room = await self.find_by_id(room_id)
        if room is None:
            return None
        room.status = status
        await self.save(room)
        logger.debug(f"Room {room_id} status set to {status.value}")
        return room

    async def player_room_id(self, player_id: str) -> Optional[str]:
        try:
            return await self.client.get(RedisKeys.player_room(player_id))
        except RedisError as e:
            logger.error(f"Failed to read room pointer for {player_id}: {e}")
            return None

    async def clear_player_room(self, player_id: str) -> None:
        """Drop a single player's pointer (player left a room that still exists)."""
        try:
            await self.client.delete(RedisKeys.player_room(player_id))
        except RedisError as e:
            logger.error(f"Failed to clear room pointer for {player_id}: {e}")
            raise StoreError("clear_player_room", str(e)) from e

    async def total_rooms(self) -> int:
        try:
            return await self.client.scard(RedisKeys.room_index()) or 0
        except RedisError as e:
            logger.error(f"Failed to count rooms: {e}")
            return 0

    async def list_all(self) -> List[GameRoom]:
        """
        Fetch every room in the index.

        O(room count) round trips. Ids whose record has already expired are
        skipped. Raises StoreError when Redis fails.
        """
        try:
            room_ids = await self.client.smembers(RedisKeys.room_index())
        except RedisError as e:
            logger.error(f"Failed to list rooms: {e}")
            raise StoreError("list_all", str(e)) from e

        rooms = []
        for room_id in sorted(room_ids):
            room = await self.find_by_id(room_id)
            if room:
                rooms.append(room)
        return rooms

    async def list_by_mode(self, mode: GameMode) -> List[GameRoom]:
        return [room for room in await self.list_all() if room.mode == mode]

    async def list_by_status(self, status: RoomStatus) -> List[GameRoom]:
        return [room for room in await self.list_all() if room.status == status]

    async def prune_index(self) -> int:
        """Remove index ids whose room record no longer exists. Returns how many."""
        try:
            room_ids = await self.client.smembers(RedisKeys.room_index())
            pruned = 0
            for room_id in room_ids:
                if not await self.client.exists(RedisKeys.room(room_id)):
                    await self.client.srem(RedisKeys.room_index(), room_id)
                    pruned += 1
            return pruned
        except RedisError as e:
            logger.error(f"Failed to prune room index: {e}")
            return 0
