"""Matchmaking error taxonomy.

Every domain error carries a ``kind`` so the transport layer can map it to a
status code without knowing the concrete class.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from matchmaker.utils.timezone_utils import now_ms


class ErrorKind(str, Enum):
    """Category of a matchmaking error."""
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"


class MatchmakingError(Exception):
    """Base class for matchmaking errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "MATCHMAKING_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context
        self.timestamp = now_ms()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp,
            **self.context,
        }


class RoomNotFoundError(MatchmakingError):
    kind = ErrorKind.NOT_FOUND
    code = "ROOM_NOT_FOUND"

    def __init__(self, room_id: str):
        super().__init__(f"Room not found: {room_id}", roomId=room_id)
        self.room_id = room_id


class PlayerAlreadyInQueueError(MatchmakingError):
    kind = ErrorKind.CONFLICT
    code = "PLAYER_ALREADY_IN_QUEUE"

    def __init__(self, player_id: str, mode: str):
        super().__init__(
            f"Player {player_id} is already in the {mode} matchmaking queue",
            playerId=player_id,
            mode=mode,
        )
        self.player_id = player_id


class PlayerAlreadyInRoomError(MatchmakingError):
    kind = ErrorKind.CONFLICT
    code = "PLAYER_ALREADY_IN_ROOM"

    def __init__(self, player_id: str, room_id: str):
        super().__init__(
            f"Player {player_id} is already in room {room_id}",
            playerId=player_id,
            roomId=room_id,
        )
        self.player_id = player_id
        self.room_id = room_id


class RoomFullError(MatchmakingError):
    kind = ErrorKind.CONFLICT
    code = "ROOM_FULL"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} is full", roomId=room_id)
        self.room_id = room_id


class RoomInProgressError(MatchmakingError):
    kind = ErrorKind.CONFLICT
    code = "ROOM_IN_PROGRESS"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} is already in progress", roomId=room_id)
        self.room_id = room_id


class RoomNotReadyError(MatchmakingError):
    kind = ErrorKind.CONFLICT
    code = "ROOM_NOT_READY"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} is not ready to start", roomId=room_id)
        self.room_id = room_id


class InvalidInputError(MatchmakingError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, validationErrors=errors or [])
        self.errors = errors or []


class InvalidModeError(InvalidInputError):
    code = "INVALID_MODE"

    def __init__(self, value: Any, valid_modes: List[str]):
        super().__init__(
            f"Invalid game mode: {value}. Valid modes: {', '.join(valid_modes)}",
            [{"field": "mode", "message": "invalid mode", "value": value}],
        )


class StoreError(MatchmakingError):
    """Backend I/O failure."""

    kind = ErrorKind.INTERNAL
    code = "STORE_ERROR"

    def __init__(self, operation: str, detail: str):
        super().__init__(f"Store operation '{operation}' failed: {detail}", operation=operation)
        self.operation = operation
