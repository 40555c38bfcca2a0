"""Player Model - a waiting entry in a mode queue."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from matchmaker.exceptions import InvalidInputError
from matchmaker.models.game_mode import GameMode
from matchmaker.utils.timezone_utils import now_ms


MAX_PLAYER_ID_LENGTH = 100


def validate_player_id(player_id: Optional[str]) -> str:
    """Return the stripped player id, or raise InvalidInputError."""
    if not isinstance(player_id, str) or not player_id.strip():
        raise InvalidInputError(
            "Player ID cannot be empty",
            [{"field": "playerId", "message": "required", "value": player_id}],
        )
    player_id = player_id.strip()
    if len(player_id) > MAX_PLAYER_ID_LENGTH:
        raise InvalidInputError(
            f"Player ID must be between 1 and {MAX_PLAYER_ID_LENGTH} characters",
            [{"field": "playerId", "message": "too long", "value": player_id}],
        )
    return player_id


class Player(BaseModel):
    """
    Queue entry for one player.

    Serialized as ``{"playerId", "mode", "joinedAt"}`` with joinedAt in
    epoch milliseconds.
    """
    player_id: str = Field(..., alias="playerId")
    mode: GameMode
    joined_at: int = Field(default_factory=now_ms, alias="joinedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def of(cls, player_id: str, mode: GameMode) -> "Player":
        return cls(player_id=player_id, mode=mode, joined_at=now_ms())

    @classmethod
    def from_json(cls, raw: str) -> "Player":
        return cls.model_validate_json(raw)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def wait_time_ms(self, now: Optional[int] = None) -> int:
        """Milliseconds spent waiting in the queue."""
        return (now if now is not None else now_ms()) - self.joined_at
