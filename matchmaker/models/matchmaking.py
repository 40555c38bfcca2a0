"""Matchmaking DTOs - request/response shapes exchanged with the transport layer."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from matchmaker.models.game_room import GameRoom
from matchmaker.utils.timezone_utils import now_ms


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class MatchmakingRequest(_CamelModel):
    """Body of join/leave requests."""
    player_id: str = Field(..., alias="playerId")
    mode: str


class MatchmakingResponse(_CamelModel):
    """Result of joining a queue."""
    success: bool
    message: str
    queue_position: Optional[int] = Field(None, alias="queuePosition")
    waiting_players: Optional[int] = Field(None, alias="waitingPlayers")

    @classmethod
    def ok(cls, message: str, queue_position: int, waiting_players: int) -> "MatchmakingResponse":
        return cls(
            success=True,
            message=message,
            queue_position=queue_position,
            waiting_players=waiting_players,
        )


class RoomResponse(_CamelModel):
    """Room view returned over the API."""
    room_id: str = Field(..., alias="roomId")
    players: List[str]
    mode: str
    status: str
    current_players: int = Field(..., alias="currentPlayers")
    max_players: int = Field(..., alias="maxPlayers")
    created_at: int = Field(..., alias="createdAt")

    @classmethod
    def from_room(cls, room: GameRoom) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            players=list(room.players),
            mode=room.mode.value,
            status=room.status.value,
            current_players=room.current_players,
            max_players=room.max_players,
            created_at=room.created_at,
        )


class RoomNotificationEvent(_CamelModel):
    """Payload published on the room-formed channel."""
    room_id: str = Field(..., alias="roomId")
    players: List[str]
    mode: str
    timestamp: int = Field(default_factory=now_ms)

    @classmethod
    def from_room(cls, room: GameRoom) -> "RoomNotificationEvent":
        return cls(
            room_id=room.room_id,
            players=list(room.players),
            mode=room.mode.value,
            timestamp=now_ms(),
        )

    @classmethod
    def from_json(cls, raw: str) -> "RoomNotificationEvent":
        return cls.model_validate_json(raw)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class MatchmakingStats(_CamelModel):
    """Aggregate counts for monitoring."""
    pvp_queue_size: int = Field(..., alias="pvpQueueSize")
    boss_queue_size: int = Field(..., alias="bossQueueSize")
    total_rooms: int = Field(..., alias="totalRooms")
    timestamp: int = Field(default_factory=now_ms)


class PlayerState(str, Enum):
    IN_ROOM = "IN_ROOM"
    IN_QUEUE = "IN_QUEUE"
    NOT_IN_MATCHMAKING = "NOT_IN_MATCHMAKING"


class PlayerStatus(_CamelModel):
    """Where a player currently is: in a room, in a queue, or neither."""
    status: PlayerState
    mode: Optional[str] = None
    room_id: Optional[str] = Field(None, alias="roomId")
    room_status: Optional[str] = Field(None, alias="roomStatus")
    players: Optional[List[str]] = None
    position: Optional[int] = None
    queue_size: Optional[int] = Field(None, alias="queueSize")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ErrorResponse(_CamelModel):
    """Generic error body for failures outside the matchmaking taxonomy."""
    error: str
    message: str
    status: int
    timestamp: int = Field(default_factory=now_ms)
