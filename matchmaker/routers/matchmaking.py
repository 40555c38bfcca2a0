"""
Matchmaking Router

Queue admission, player status and room management over REST.
Domain errors propagate to the exception handler in main.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import validate_room_id
from matchmaker.models.matchmaking import MatchmakingRequest, RoomResponse
from matchmaker.models.player import validate_player_id
from matchmaker.models.room_status import RoomStatus
from matchmaker.dependencies import get_matchmaking_service, get_room_service
from matchmaker.services.matchmaking_service import MatchmakingService
from matchmaker.services.room_service import RoomService
from matchmaker.utils.timezone_utils import now_ms


router = APIRouter()


class LeaveRoomRequest(BaseModel):
    """Body of a room leave request."""
    player_id: str = Field(..., alias="playerId")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Queue
# =============================================================================


@router.post("/join")
async def join_matchmaking(
    request: MatchmakingRequest,
    matchmaking_service: MatchmakingService = Depends(get_matchmaking_service)
):
    """
    Join a matchmaking queue.

    Fails with 409 if the player is already queued in any mode or already
    holds a room.
    """
    mode = GameMode.from_name(request.mode)
    response = await matchmaking_service.join_matchmaking(request.player_id, mode)
    return response.to_dict()


@router.post("/leave")
async def leave_matchmaking(
    request: MatchmakingRequest,
    matchmaking_service: MatchmakingService = Depends(get_matchmaking_service)
):
    """Leave a matchmaking queue. success is false if the player was not queued."""
    player_id = validate_player_id(request.player_id)
    mode = GameMode.from_name(request.mode)
    removed = await matchmaking_service.leave_matchmaking(player_id, mode)
    return {
        "success": removed,
        "message": (
            "You left the matchmaking queue"
            if removed else "You were not in the matchmaking queue"
        ),
    }


@router.get("/status/{player_id}")
async def get_player_status(
    player_id: str,
    matchmaking_service: MatchmakingService = Depends(get_matchmaking_service)
):
    player_id = validate_player_id(player_id)
    status = await matchmaking_service.get_player_status(player_id)
    return status.to_dict()


@router.get("/queue/{mode}")
async def get_queue_info(
    mode: str,
    matchmaking_service: MatchmakingService = Depends(get_matchmaking_service)
):
    game_mode = GameMode.from_name(mode)
    return {
        "mode": game_mode.value,
        "queueSize": await matchmaking_service.get_queue_size(game_mode),
        "timestamp": now_ms(),
    }


@router.get("/stats")
async def get_stats(
    matchmaking_service: MatchmakingService = Depends(get_matchmaking_service)
):
    stats = await matchmaking_service.get_stats()
    return stats.to_dict()


# =============================================================================
# Rooms
# =============================================================================


@router.get("/rooms")
async def list_rooms(
    mode: Optional[str] = None,
    status: Optional[str] = None,
    room_service: RoomService = Depends(get_room_service)
):
    """List rooms, optionally filtered by mode or (if no mode) by status."""
    game_mode = GameMode.from_name(mode) if mode else None
    room_status = RoomStatus.from_name(status) if status else None

    rooms = await room_service.list_rooms(mode=game_mode, status=room_status)
    return {
        "count": len(rooms),
        "rooms": [RoomResponse.from_room(room).to_dict() for room in rooms],
    }


@router.get("/rooms/{room_id}")
async def get_room(
    room_id: str,
    room_service: RoomService = Depends(get_room_service)
):
    room = await room_service.get_room_by_id(validate_room_id(room_id))
    return RoomResponse.from_room(room).to_dict()


@router.post("/rooms/{room_id}/start")
async def start_room(
    room_id: str,
    room_service: RoomService = Depends(get_room_service)
):
    """READY -> IN_PROGRESS. 409 if the room is not ready."""
    room = await room_service.mark_in_progress(validate_room_id(room_id))
    return {
        "success": True,
        "message": "Match started",
        "room": RoomResponse.from_room(room).to_dict(),
    }


@router.post("/rooms/{room_id}/finish")
async def finish_room(
    room_id: str,
    room_service: RoomService = Depends(get_room_service)
):
    room = await room_service.mark_finished(validate_room_id(room_id))
    return {
        "success": True,
        "message": "Match finished",
        "room": RoomResponse.from_room(room).to_dict(),
    }


@router.delete("/rooms/{room_id}")
async def delete_room(
    room_id: str,
    room_service: RoomService = Depends(get_room_service)
):
    """Delete a room. Deleting a room that does not exist is a no-op."""
    room_id = validate_room_id(room_id)
    await room_service.delete_room(room_id)
    return {
        "success": True,
        "message": f"Room {room_id} deleted",
    }


@router.post("/rooms/{room_id}/leave")
async def leave_room(
    room_id: str,
    request: LeaveRoomRequest,
    room_service: RoomService = Depends(get_room_service)
):
    room_id = validate_room_id(room_id)
    player_id = validate_player_id(request.player_id)
    removed = await room_service.remove_player_from_room(room_id, player_id)
    return {
        "success": removed,
        "roomId": room_id,
        "playerId": player_id,
    }
