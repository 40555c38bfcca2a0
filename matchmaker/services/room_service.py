"""Room Service - room lifecycle rules on top of RoomStore."""

import logging
from typing import List, Optional

from matchmaker.config import Settings, get_settings
from matchmaker.exceptions import (
    RoomFullError,
    RoomInProgressError,
    RoomNotFoundError,
    RoomNotReadyError,
)
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.room_status import RoomStatus
from matchmaker.services.room_store import RoomStore


logger = logging.getLogger(__name__)


class RoomService:
    """
    Game room management service.

    Handles creation, membership changes and status transitions:
    FORMING -> READY (automatic, once the minimum is reached),
    READY -> IN_PROGRESS (explicit start), any -> FINISHED (explicit finish).
    A room whose last member leaves is deleted immediately.
    """

    def __init__(self, room_store: RoomStore, settings: Optional[Settings] = None):
        self.room_store = room_store
        self.settings = settings or get_settings()

    def get_max_players_for_mode(self, mode: GameMode) -> int:
        return self.settings.max_players_for(mode)

    async def create_room(self, mode: GameMode) -> GameRoom:
        """Create and persist an empty FORMING room sized for the mode."""
        room = GameRoom.create(mode, self.get_max_players_for_mode(mode))
        await self.room_store.save(room)
        logger.info(f"Room created: {room.room_id} in mode {mode.value}")
        return room

    async def get_room_by_id(self, room_id: str) -> GameRoom:
        room = await self.room_store.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def apply_auto_ready(self, room: GameRoom) -> bool:
        """FORMING -> READY once membership reaches the configured minimum."""
        return room.mark_ready(self.settings.min_players_for_room)

    async def promote_if_ready(self, room_id: str) -> GameRoom:
        """Re-read the room and apply the FORMING -> READY rule, saving on change."""
        room = await self.get_room_by_id(room_id)
        if self.apply_auto_ready(room):
            await self.room_store.save(room)
            logger.debug(f"Room {room_id} is READY")
        return room

    async def add_player_to_room(self, room_id: str, player_id: str) -> bool:
        """
        Add a player to a room.

        Raises RoomInProgressError if the game already started and
        RoomFullError if the room is at capacity.
        Returns False if the player is already a member.
        """
        room = await self.get_room_by_id(room_id)
        if room.status == RoomStatus.IN_PROGRESS:
            raise RoomInProgressError(room_id)
        if room.is_full():
            raise RoomFullError(room_id)

        if not room.add_player(player_id):
            return False

        self.apply_auto_ready(room)
        await self.room_store.save(room)
        logger.debug(f"Player {player_id} added to room {room_id}")
        return True

    async def remove_player_from_room(self, room_id: str, player_id: str) -> bool:
        """
        Remove a player from a room.

        The room is deleted when it empties. Dropping below the minimum sends
        it back to FORMING whatever its status was, including IN_PROGRESS.
        """
        room = await self.room_store.find_by_id(room_id)
        if room is None or not room.remove_player(player_id):
            return False

        if room.current_players == 0:
            await self.room_store.delete(room_id)
            logger.info(f"Room {room_id} deleted because it is empty")
            return True

        if room.current_players < self.settings.min_players_for_room:
            previous = room.reset_to_forming()
            if previous == RoomStatus.IN_PROGRESS:
                logger.warning(
                    f"Room {room_id} abandoned mid-game: {room.current_players} "
                    f"player(s) left, status reset to FORMING"
                )

        await self.room_store.save(room)
        await self.room_store.clear_player_room(player_id)
        logger.debug(f"Player {player_id} removed from room {room_id}")
        return True

    async def mark_in_progress(self, room_id: str) -> GameRoom:
        """READY -> IN_PROGRESS; only allowed when the room is ready."""
        room = await self.get_room_by_id(room_id)
        if not room.is_ready():
            raise RoomNotReadyError(room_id)
        room.mark_in_progress()
        await self.room_store.save(room)
        logger.info(f"Room {room_id} marked as in progress")
        return room

    async def mark_finished(self, room_id: str) -> GameRoom:
        """Any status -> FINISHED."""
        room = await self.get_room_by_id(room_id)
        room.mark_finished()
        await self.room_store.save(room)
        logger.info(f"Room {room_id} marked as finished")
        return room

    async def is_room_ready(self, room_id: str) -> bool:
        room = await self.get_room_by_id(room_id)
        return room.is_ready()

    async def list_rooms(
        self,
        mode: Optional[GameMode] = None,
        status: Optional[RoomStatus] = None
    ) -> List[GameRoom]:
        """All rooms, or those of one mode, or those in one status (mode wins if both)."""
        if mode is not None:
            return await self.room_store.list_by_mode(mode)
        if status is not None:
            return await self.room_store.list_by_status(status)
        return await self.room_store.list_all()

    async def get_player_room(self, player_id: str) -> Optional[GameRoom]:
        room_id = await self.room_store.player_room_id(player_id)
        if not room_id:
            return None
        return await self.room_store.find_by_id(room_id)

    async def get_total_rooms(self) -> int:
        return await self.room_store.total_rooms()

    async def delete_room(self, room_id: str) -> None:
        await self.room_store.delete(room_id)
        logger.info(f"Room {room_id} deleted")
