"""Matchmaking Service - queue admission and the FIFO matching algorithm."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from matchmaker.config import Settings, get_settings
from matchmaker.exceptions import PlayerAlreadyInQueueError, PlayerAlreadyInRoomError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.game_room import GameRoom
from matchmaker.models.matchmaking import (
    MatchmakingResponse,
    MatchmakingStats,
    PlayerState,
    PlayerStatus,
)
from matchmaker.models.player import Player, validate_player_id
from matchmaker.services.notification_service import RoomNotifier
from matchmaker.services.queue_store import QueueStore
from matchmaker.services.room_service import RoomService


logger = logging.getLogger(__name__)


class MatchmakingService:
    """
    Matchmaking over per-mode FIFO queues.

    A player is in at most one queue or one room at a time. Matching is
    strict FIFO by mode with no skill or attribute criteria.

    perform_matching() reads the queue size and then pops players in
    separate round trips. It assumes a single scheduler drives a given mode;
    MatchScheduler enforces that with an advisory lock.
    """

    def __init__(
        self,
        queue_stores: Dict[GameMode, QueueStore],
        room_service: RoomService,
        notifier: RoomNotifier,
        settings: Optional[Settings] = None
    ):
        self.queue_stores = queue_stores
        self.room_service = room_service
        self.notifier = notifier
        self.settings = settings or get_settings()

    def queue_for(self, mode: GameMode) -> QueueStore:
        return self.queue_stores[mode]

    # =========================================================================
    # Admission
    # =========================================================================

    async def join_matchmaking(self, player_id: str, mode: GameMode) -> MatchmakingResponse:
        """
        Put a player at the tail of a mode queue.

        Raises PlayerAlreadyInQueueError if the player waits in any queue and
        PlayerAlreadyInRoomError if the player already holds a room.
        """
        player_id = validate_player_id(player_id)

        for queued_mode in GameMode:
            if await self.queue_for(queued_mode).contains(player_id):
                raise PlayerAlreadyInQueueError(player_id, queued_mode.value)

        existing_room = await self.room_service.get_player_room(player_id)
        if existing_room:
            raise PlayerAlreadyInRoomError(player_id, existing_room.room_id)

        queue = self.queue_for(mode)
        await queue.enqueue(Player.of(player_id, mode))

        queue_size = await queue.size()
        logger.info(f"Player {player_id} joined {mode.value} queue. Size: {queue_size}")

        return MatchmakingResponse.ok(
            f"You joined the {mode.description} queue",
            queue_size,
            queue_size
        )

    async def leave_matchmaking(self, player_id: str, mode: GameMode) -> bool:
        """Remove the player from a mode queue. False if they were not queued."""
        removed = await self.queue_for(mode).remove_one(player_id)
        if removed:
            logger.info(f"Player {player_id} left {mode.value} queue")
        return removed

    # =========================================================================
    # Matching
    # =========================================================================

    async def perform_matching(
        self,
        mode: GameMode,
        on_room_formed: Optional[Callable[[GameRoom], Awaitable[Any]]] = None
    ) -> List[GameRoom]:
        """
        Form as many rooms as the queue allows for one mode.

        While the queue holds at least MIN_PLAYERS_FOR_ROOM players: create a
        room, pop min(queue size, capacity) players from the head into it,
        mark it READY and publish a room-formed event.
        A batch that comes up short of the minimum is put back at the head
        of the queue and its room is discarded.
        on_room_formed is awaited after each published room; an error it
        raises stops matching for this call.

        Returns the rooms formed during this call.
        """
        queue = self.queue_for(mode)
        min_players = self.settings.min_players_for_room
        max_players = self.room_service.get_max_players_for_mode(mode)

        queue_size = await queue.size()
        if queue_size < min_players:
            logger.debug(f"Not enough players in {mode.value} queue ({queue_size})")
            return []

        formed = []
        while queue_size >= min_players:
            batch = min(queue_size, max_players)
            room = await self.room_service.create_room(mode)
            added_players: List[Player] = []

            for _ in range(batch):
                player = await queue.dequeue_head()
                if player is None:
                    break
                if await self.room_service.add_player_to_room(room.room_id, player.player_id):
                    added_players.append(player)

            if len(added_players) < min_players:
                # Players left between the size read and the pops
                await self.room_service.delete_room(room.room_id)
                await queue.requeue_front(added_players)
                logger.info(
                    f"Discarded room {room.room_id}: only {len(added_players)} player(s) "
                    f"left in {mode.value} queue"
                )
                break

            room = await self.room_service.promote_if_ready(room.room_id)
            await self.notifier.publish_room_formed(room)
            formed.append(room)
            logger.info(
                f"Room {room.room_id} formed with {len(added_players)} players in mode {mode.value}"
            )
            if on_room_formed is not None:
                await on_room_formed(room)

            queue_size = await queue.size()

        return formed

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_queue_size(self, mode: GameMode) -> int:
        return await self.queue_for(mode).size()

    async def get_stats(self) -> MatchmakingStats:
        return MatchmakingStats(
            pvp_queue_size=await self.get_queue_size(GameMode.PVP),
            boss_queue_size=await self.get_queue_size(GameMode.BOSS),
            total_rooms=await self.room_service.get_total_rooms(),
        )

    async def get_player_queue_position(self, player_id: str, mode: GameMode) -> Optional[int]:
        """1-based position in the mode queue, or None."""
        return await self.queue_for(mode).position_of(player_id, self.settings.queue_scan_limit)

    async def get_player_status(self, player_id: str) -> PlayerStatus:
        """Room membership if any, else queue position (PVP checked before BOSS)."""
        room = await self.room_service.get_player_room(player_id)
        if room:
            return PlayerStatus(
                status=PlayerState.IN_ROOM,
                room_id=room.room_id,
                room_status=room.status.value,
                players=list(room.players),
                mode=room.mode.value,
            )

        for mode in (GameMode.PVP, GameMode.BOSS):
            position = await self.get_player_queue_position(player_id, mode)
            if position:
                return PlayerStatus(
                    status=PlayerState.IN_QUEUE,
                    mode=mode.value,
                    position=position,
                    queue_size=await self.get_queue_size(mode),
                )

        return PlayerStatus(status=PlayerState.NOT_IN_MATCHMAKING)
