"""
WebSocket Router

Real-time matchmaking updates: queue changes, room-found notifications and
room presence.
"""

import json
import logging
from typing import Dict, Optional, Set

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from matchmaker.dependencies import ServiceContainer
from matchmaker.exceptions import InvalidInputError, MatchmakingError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import validate_room_id
from matchmaker.models.matchmaking import RoomNotificationEvent
from matchmaker.models.player import validate_player_id
from matchmaker.utils.timezone_utils import utc_now


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Connection Manager
# =============================================================================


class ConnectionManager:
    """
    Manages WebSocket connections.

    Connections are grouped by player_id for targeted notifications. The
    manager also tracks which players watch each mode queue and each room
    so updates can be fanned out to them.
    """

    def __init__(self):
        # player_id -> set of WebSocket connections
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        # mode -> player_ids waiting in that queue
        self.queue_watchers: Dict[str, Set[str]] = {mode.value: set() for mode in GameMode}
        # room_id -> player_ids subscribed to that room
        self.room_watchers: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket, player_id: str):
        """Accept and track a new connection."""
        await websocket.accept()

        if player_id not in self.active_connections:
            self.active_connections[player_id] = set()

        self.active_connections[player_id].add(websocket)

    def disconnect(self, websocket: WebSocket, player_id: str) -> bool:
        """Remove a connection. True if it was the player's last one."""
        if player_id not in self.active_connections:
            return False

        self.active_connections[player_id].discard(websocket)
        if self.active_connections[player_id]:
            return False

        del self.active_connections[player_id]
        for watchers in self.queue_watchers.values():
            watchers.discard(player_id)
        for room_id in list(self.room_watchers):
            self.leave_room_view(room_id, player_id)
        return True

    async def send_personal(self, player_id: str, message: dict):
        """Send message to all connections of a player."""
        if player_id in self.active_connections:
            disconnected = set()

            for websocket in self.active_connections[player_id]:
                try:
                    await websocket.send_json(message)
                except Exception:
                    disconnected.add(websocket)

            # Clean up disconnected sockets
            for ws in disconnected:
                self.active_connections[player_id].discard(ws)

    async def broadcast_to_players(self, player_ids, message: dict, exclude: Optional[str] = None):
        for player_id in list(player_ids):
            if player_id != exclude:
                await self.send_personal(player_id, message)

    # -------------------------------------------------------------------------
    # Queue and room views
    # -------------------------------------------------------------------------

    def join_queue_view(self, mode: str, player_id: str):
        self.queue_watchers.setdefault(mode, set()).add(player_id)

    def leave_queue_view(self, mode: str, player_id: str):
        self.queue_watchers.get(mode, set()).discard(player_id)

    async def broadcast_to_queue(self, mode: str, message: dict, exclude: Optional[str] = None):
        await self.broadcast_to_players(self.queue_watchers.get(mode, set()), message, exclude)

    def join_room_view(self, room_id: str, player_id: str):
        self.room_watchers.setdefault(room_id, set()).add(player_id)

    def leave_room_view(self, room_id: str, player_id: str):
        watchers = self.room_watchers.get(room_id)
        if watchers is None:
            return
        watchers.discard(player_id)
        if not watchers:
            del self.room_watchers[room_id]

    async def broadcast_to_room(self, room_id: str, message: dict, exclude: Optional[str] = None):
        await self.broadcast_to_players(self.room_watchers.get(room_id, set()), message, exclude)

    async def handle_room_formed(self, event: RoomNotificationEvent):
        """Tell every matched player about the room and stop showing them the queue."""
        message = {
            "type": "room-found",
            "roomId": event.room_id,
            "players": event.players,
            "mode": event.mode,
            "timestamp": event.timestamp,
        }
        for player_id in event.players:
            await self.send_personal(player_id, message)
            self.leave_queue_view(event.mode, player_id)


manager = ConnectionManager()


# =============================================================================
# Client Events
# =============================================================================


def _error(event_type: str, error: str, message: str) -> dict:
    return {"type": event_type, "error": error, "message": message}


async def handle_client_message(
    container: ServiceContainer,
    websocket: WebSocket,
    player_id: str,
    message: dict
):
    """Dispatch one client event. MatchmakingError propagates to the endpoint loop."""
    message_type = message.get("type")
    matchmaking_service = container.matchmaking_service
    room_service = container.room_service

    if message_type == "ping":
        await websocket.send_json({"type": "pong", "timestamp": utc_now().isoformat()})

    elif message_type == "get-status":
        status = await matchmaking_service.get_player_status(player_id)
        await websocket.send_json({"type": "player-status", **status.to_dict()})

    elif message_type == "join-matchmaking":
        mode = GameMode.from_name(message.get("mode"))
        response = await matchmaking_service.join_matchmaking(player_id, mode)
        manager.join_queue_view(mode.value, player_id)

        await websocket.send_json({
            "type": "matchmaking-joined",
            **response.to_dict(),
            "mode": mode.value,
        })
        await manager.broadcast_to_queue(
            mode.value,
            {"type": "queue-updated", "waitingPlayers": response.waiting_players, "mode": mode.value},
            exclude=player_id,
        )
        logger.info(f"{player_id} joined {mode.value} matchmaking over WebSocket")

    elif message_type == "leave-matchmaking":
        mode = GameMode.from_name(message.get("mode"))
        removed = await matchmaking_service.leave_matchmaking(player_id, mode)
        manager.leave_queue_view(mode.value, player_id)

        await websocket.send_json({"type": "matchmaking-left", "success": removed, "mode": mode.value})
        queue_size = await matchmaking_service.get_queue_size(mode)
        await manager.broadcast_to_queue(
            mode.value,
            {"type": "queue-updated", "waitingPlayers": queue_size, "mode": mode.value},
        )

    elif message_type == "get-queue-info":
        stats = await matchmaking_service.get_stats()
        await websocket.send_json({"type": "queue-info", **stats.to_dict()})

    elif message_type == "join-room":
        room = await room_service.get_room_by_id(validate_room_id(message.get("roomId")))
        if not room.has_player(player_id):
            await websocket.send_json(_error("room-error", "NOT_IN_ROOM", "You are not in this room"))
            return

        manager.join_room_view(room.room_id, player_id)
        await websocket.send_json({
            "type": "room-joined",
            "roomId": room.room_id,
            "players": list(room.players),
            "mode": room.mode.value,
            "status": room.status.value,
        })

    elif message_type == "player-ready":
        room_id = validate_room_id(message.get("roomId"))
        await manager.broadcast_to_room(
            room_id,
            {"type": "player-ready-update", "playerId": player_id, "roomId": room_id},
            exclude=player_id,
        )

    elif message_type == "leave-room":
        room_id = validate_room_id(message.get("roomId"))
        await room_service.remove_player_from_room(room_id, player_id)
        manager.leave_room_view(room_id, player_id)

        await manager.broadcast_to_room(
            room_id, {"type": "player-left", "playerId": player_id, "roomId": room_id}
        )
        await websocket.send_json({"type": "room-left", "roomId": room_id})
        logger.info(f"{player_id} left room {room_id}")

    else:
        logger.debug(f"Ignoring unknown WebSocket event from {player_id}: {message_type}")


def _error_event_for(message_type: Optional[str]) -> str:
    if message_type in ("join-room", "leave-room", "player-ready"):
        return "room-error"
    return "matchmaking-error"


async def handle_disconnect(container: ServiceContainer, player_id: str):
    """Drop the player from every queue and tell room peers they went away."""
    for mode in GameMode:
        await container.matchmaking_service.leave_matchmaking(player_id, mode)

    room = await container.room_service.get_player_room(player_id)
    if room:
        await manager.broadcast_to_room(
            room.room_id,
            {"type": "player-disconnected", "playerId": player_id, "roomId": room.room_id},
        )


# =============================================================================
# WebSocket Endpoint
# =============================================================================


@router.websocket("")
async def websocket_endpoint(websocket: WebSocket, player_id: str = Query("")):
    """
    WebSocket endpoint for real-time matchmaking updates.

    Connect with: ws://host/ws?player_id=<player id>

    Client events (JSON with a "type" field):
    - get-status, join-matchmaking {mode}, leave-matchmaking {mode},
      get-queue-info, join-room {roomId}, leave-room {roomId},
      player-ready {roomId}, ping

    Messages sent to client:
    - player-status, matchmaking-joined, matchmaking-left, queue-updated,
      queue-info, room-joined, room-left, player-left, player-ready-update,
      player-disconnected, room-found, matchmaking-error, room-error
    """
    try:
        player_id = validate_player_id(player_id)
    except InvalidInputError:
        await websocket.close(code=4001, reason="Player ID required")
        return

    container: ServiceContainer = websocket.app.state.container
    await manager.connect(websocket, player_id)
    logger.info(f"Client connected: {player_id}")

    try:
        await websocket.send_json(
            {
                "type": "connected",
                "playerId": player_id,
                "timestamp": utc_now().isoformat(),
            }
        )

        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(message, dict):
                continue

            try:
                await handle_client_message(container, websocket, player_id, message)
            except MatchmakingError as e:
                await websocket.send_json(
                    _error(_error_event_for(message.get("type")), e.code, e.message)
                )
            except Exception as e:
                logger.error(f"WebSocket event {message.get('type')} failed for {player_id}: {e}", exc_info=True)
                await websocket.send_json(
                    _error(_error_event_for(message.get("type")), "INTERNAL_ERROR", "Something went wrong")
                )

    except WebSocketDisconnect:
        logger.info(f"Client disconnected: {player_id}")
        if manager.disconnect(websocket, player_id):
            try:
                await handle_disconnect(container, player_id)
            except Exception as e:
                logger.error(f"Disconnect cleanup failed for {player_id}: {e}")
