"""Game Room Model - a matched group of players and its lifecycle state."""

import re
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from matchmaker.exceptions import InvalidInputError
from matchmaker.models.game_mode import GameMode
from matchmaker.models.room_status import RoomStatus
from matchmaker.utils.timezone_utils import now_ms


ROOM_ID_PATTERN = re.compile(r"^room_[a-f0-9]{8}$")

# isReady() requires at least this many members regardless of configuration
READY_MIN_PLAYERS = 2


def validate_room_id(room_id: Optional[str]) -> str:
    """Return the room id if it has the room_<8 hex> shape, else raise."""
    if not isinstance(room_id, str) or not ROOM_ID_PATTERN.match(room_id):
        raise InvalidInputError(
            "Invalid room ID format",
            [{"field": "roomId", "message": "expected room_<8 hex chars>", "value": room_id}],
        )
    return room_id


class GameRoom(BaseModel):
    """
    Game room record.

    Objects handed out by the stores are disposable copies: mutating one has
    no effect until it is saved back through RoomStore.save().

    Fields:
    - room_id: room_<8 hex chars>
    - mode: Game mode the room was formed for
    - status: Lifecycle state
    - players: Member ids, unique, in join order
    - max_players: Capacity of the mode at creation time
    - current_players: Always len(players)
    - created_at: Creation time in epoch milliseconds
    """
    room_id: str = Field(..., alias="roomId")
    mode: GameMode
    status: RoomStatus = Field(default=RoomStatus.FORMING)
    players: List[str] = Field(default_factory=list)
    max_players: int = Field(..., alias="maxPlayers")
    current_players: int = Field(default=0, alias="currentPlayers")
    created_at: int = Field(default_factory=now_ms, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @staticmethod
    def generate_room_id() -> str:
        return f"room_{uuid.uuid4().hex[:8]}"

    @classmethod
    def create(cls, mode: GameMode, max_players: int, room_id: Optional[str] = None) -> "GameRoom":
        """New empty room in FORMING state."""
        return cls(
            room_id=room_id or cls.generate_room_id(),
            mode=mode,
            status=RoomStatus.FORMING,
            players=[],
            max_players=max_players,
            current_players=0,
            created_at=now_ms(),
        )

    @classmethod
    def from_json(cls, raw: str) -> "GameRoom":
        return cls.model_validate_json(raw)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    # =========================================================================
    # Predicates
    # =========================================================================

    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def can_accept_player(self) -> bool:
        return not self.is_full() and self.status != RoomStatus.IN_PROGRESS

    def is_ready(self) -> bool:
        return len(self.players) >= READY_MIN_PLAYERS and self.status == RoomStatus.READY

    def has_player(self, player_id: str) -> bool:
        return player_id in self.players

    def age_ms(self, now: Optional[int] = None) -> int:
        return (now if now is not None else now_ms()) - self.created_at

    # =========================================================================
    # Membership
    # =========================================================================

    def add_player(self, player_id: str) -> bool:
        """Append a member. False (and no change) if full, in progress or duplicate."""
        if not self.can_accept_player() or self.has_player(player_id):
            return False
        self.players.append(player_id)
        self.current_players = len(self.players)
        return True

    def remove_player(self, player_id: str) -> bool:
        if not self.has_player(player_id):
            return False
        self.players.remove(player_id)
        self.current_players = len(self.players)
        return True

    # =========================================================================
    # Transitions
    # =========================================================================

    def mark_ready(self, min_players: int) -> bool:
        """FORMING -> READY once membership reaches min_players. Returns True if changed."""
        if self.status == RoomStatus.FORMING and len(self.players) >= max(min_players, READY_MIN_PLAYERS):
            self.status = RoomStatus.READY
            return True
        return False

    def mark_in_progress(self):
        self.status = RoomStatus.IN_PROGRESS

    def mark_finished(self):
        self.status = RoomStatus.FINISHED

    def reset_to_forming(self) -> RoomStatus:
        """
        Membership fell below the minimum: back to FORMING from any state.

        Returns the previous status so callers can tell an in-game
        abandonment apart from an ordinary under-filled room.
        """
        previous = self.status
        self.status = RoomStatus.FORMING
        return previous
