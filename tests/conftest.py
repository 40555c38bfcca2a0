"""
Shared fixtures: settings and in-memory stand-ins for the Redis stores.

The fakes keep serialized JSON like the real stores do, so every read hands
out a fresh copy and nothing changes until it is saved back.
"""

from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from matchmaker.config import Settings
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.player import Player
from matchmaker.models.room_status import RoomStatus
from matchmaker.services.matchmaking_service import MatchmakingService
from matchmaker.services.room_service import RoomService


class FakeQueueStore:
    def __init__(self, mode: GameMode):
        self.mode = mode
        self.entries: List[str] = []

    async def enqueue(self, player: Player) -> None:
        self.entries.append(player.to_json())

    async def dequeue_head(self) -> Optional[Player]:
        if not self.entries:
            return None
        return Player.from_json(self.entries.pop(0))

    async def requeue_front(self, players: List[Player]) -> None:
        self.entries[:0] = [player.to_json() for player in players]

    async def peek_first(self, count: int) -> List[Player]:
        return [Player.from_json(raw) for raw in self.entries[:max(count, 0)]]

    async def size(self) -> int:
        return len(self.entries)

    async def contains(self, player_id: str) -> bool:
        return any(Player.from_json(raw).player_id == player_id for raw in self.entries)

    async def position_of(self, player_id: str, scan_limit: int) -> Optional[int]:
        for index, player in enumerate(await self.peek_first(scan_limit)):
            if player.player_id == player_id:
                return index + 1
        return None

    async def remove_one(self, player_id: str) -> bool:
        for raw in self.entries:
            if Player.from_json(raw).player_id == player_id:
                self.entries.remove(raw)
                return True
        return False

    async def clear(self) -> None:
        self.entries = []

    def player_ids(self) -> List[str]:
        return [Player.from_json(raw).player_id for raw in self.entries]


class FakeRoomStore:
    def __init__(self):
        self.rooms: Dict[str, str] = {}
        self.index = set()
        self.pointers: Dict[str, str] = {}

    async def save(self, room: GameRoom) -> None:
        self.rooms[room.room_id] = room.to_json()
        self.index.add(room.room_id)
        for player_id in room.players:
            self.pointers[player_id] = room.room_id

    async def find_by_id(self, room_id: str) -> Optional[GameRoom]:
        raw = self.rooms.get(room_id)
        return GameRoom.from_json(raw) if raw else None

    async def exists(self, room_id: str) -> bool:
        return room_id in self.rooms

    async def delete(self, room_id: str) -> None:
        room = await self.find_by_id(room_id)
        if room:
            for player_id in room.players:
                self.pointers.pop(player_id, None)
        self.rooms.pop(room_id, None)
        self.index.discard(room_id)

    async def update_status(self, room_id: str, status: RoomStatus) -> Optional[GameRoom]:
        room = await self.find_by_id(room_id)
        if room is None:
            return None
        room.status = status
        await self.save(room)
        return room

    async def player_room_id(self, player_id: str) -> Optional[str]:
        return self.pointers.get(player_id)

    async def clear_player_room(self, player_id: str) -> None:
        self.pointers.pop(player_id, None)

    async def total_rooms(self) -> int:
        return len(self.index)

    async def list_all(self) -> List[GameRoom]:
        rooms = []
        for room_id in sorted(self.index):
            room = await self.find_by_id(room_id)
            if room:
                rooms.append(room)
        return rooms

    async def list_by_mode(self, mode: GameMode) -> List[GameRoom]:
        return [room for room in await self.list_all() if room.mode == mode]

    async def list_by_status(self, status: RoomStatus) -> List[GameRoom]:
        return [room for room in await self.list_all() if room.status == status]

    async def prune_index(self) -> int:
        stale = [room_id for room_id in self.index if room_id not in self.rooms]
        for room_id in stale:
            self.index.discard(room_id)
        return len(stale)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def queue_stores():
    return {mode: FakeQueueStore(mode) for mode in GameMode}


@pytest.fixture
def room_store():
    return FakeRoomStore()


@pytest.fixture
def room_service(room_store, settings):
    return RoomService(room_store, settings)


@pytest.fixture
def notifier():
    notifier = AsyncMock()
    notifier.publish_room_formed = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def matchmaking_service(queue_stores, room_service, notifier, settings):
    return MatchmakingService(queue_stores, room_service, notifier, settings)
