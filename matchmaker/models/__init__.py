"""Matchmaker Models Package"""

from matchmaker.models.game_mode import GameMode
from matchmaker.models.room_status import RoomStatus
from matchmaker.models.player import Player, validate_player_id
from matchmaker.models.game_room import GameRoom, validate_room_id
from matchmaker.models.matchmaking import (
    MatchmakingRequest,
    MatchmakingResponse,
    RoomResponse,
    RoomNotificationEvent,
    MatchmakingStats,
    PlayerState,
    PlayerStatus,
    ErrorResponse,
)

__all__ = [
    "GameMode", "RoomStatus",
    "Player", "validate_player_id",
    "GameRoom", "validate_room_id",
    "MatchmakingRequest", "MatchmakingResponse", "RoomResponse",
    "RoomNotificationEvent", "MatchmakingStats", "PlayerState", "PlayerStatus",
    "ErrorResponse",
]
