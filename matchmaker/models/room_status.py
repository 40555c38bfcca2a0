"""Room Status - lifecycle states of a game room."""

from enum import Enum
from typing import Optional

from matchmaker.exceptions import InvalidInputError


class RoomStatus(str, Enum):
    """
    Status of a game room.

    FORMING -> READY -> IN_PROGRESS -> FINISHED (terminal).
    """
    FORMING = "FORMING"          # Created, waiting for enough players
    READY = "READY"              # Minimum membership reached
    IN_PROGRESS = "IN_PROGRESS"  # Match started
    FINISHED = "FINISHED"        # Match over

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]

    @classmethod
    def get_by_name(cls, name: Optional[str]) -> Optional["RoomStatus"]:
        if not isinstance(name, str):
            return None
        try:
            return cls(name.strip().upper())
        except ValueError:
            return None

    @classmethod
    def from_name(cls, name: Optional[str]) -> "RoomStatus":
        status = cls.get_by_name(name)
        if status is None:
            raise InvalidInputError(
                f"Invalid room status: {name}",
                [{"field": "status", "message": "invalid status", "value": name}],
            )
        return status


_STATUS_DESCRIPTIONS = {
    RoomStatus.FORMING: "Room is forming",
    RoomStatus.READY: "Room is ready to start",
    RoomStatus.IN_PROGRESS: "Match in progress",
    RoomStatus.FINISHED: "Match finished",
}
