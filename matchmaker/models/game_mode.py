"""Game Mode - closed set of matchmaking categories."""

from enum import Enum
from typing import List, Optional

from matchmaker.exceptions import InvalidModeError


class GameMode(str, Enum):
    """Matchmaking category with its own queue and room capacity."""
    PVP = "PVP"
    BOSS = "BOSS"

    @property
    def description(self) -> str:
        return _MODE_DESCRIPTIONS[self]

    @classmethod
    def names(cls) -> List[str]:
        return [mode.value for mode in cls]

    @classmethod
    def get_by_name(cls, name: Optional[str]) -> Optional["GameMode"]:
        """Case-insensitive lookup, None when unknown."""
        if not isinstance(name, str):
            return None
        try:
            return cls(name.strip().upper())
        except ValueError:
            return None

    @classmethod
    def from_name(cls, name: Optional[str]) -> "GameMode":
        """Case-insensitive lookup that raises InvalidModeError when unknown."""
        mode = cls.get_by_name(name)
        if mode is None:
            raise InvalidModeError(name, cls.names())
        return mode


_MODE_DESCRIPTIONS = {
    GameMode.PVP: "PvP - Player vs Player",
    GameMode.BOSS: "Boss - Players vs Boss",
}
