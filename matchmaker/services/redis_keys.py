"""Redis key management for matchmaking state."""

from matchmaker.models.game_mode import GameMode


# =============================================================================
# Redis Key Naming Convention
# =============================================================================
#
# Key patterns:
# - queue:{mode}               - List of serialized Player, head = oldest
# - room:{room_id}             - String containing serialized GameRoom
# - rooms:index                - Set of live room ids
# - player:room:{player_id}    - String containing the player's room_id
# - matchmaking:lock:{mode}    - Advisory lock held while a mode is matched
#
# TTL rules:
# - Mode queue: QUEUE_EXPIRY_MINUTES, refreshed on every enqueue
# - Room, index, player pointer: ROOM_EXPIRY_HOURS, refreshed on every save
# - Lock: MATCHING_LOCK_TTL_MS
#
# =============================================================================


class RedisKeys:
    """Redis key builders with documentation."""

    @staticmethod
    def mode_queue(mode: GameMode) -> str:
        """
        List of waiting players for one mode.
        RPUSH on join, LPOP on match for FIFO ordering.
        """
        return f"queue:{mode.value}"

    @staticmethod
    def room(room_id: str) -> str:
        """String containing the JSON room record."""
        return f"room:{room_id}"

    @staticmethod
    def room_index() -> str:
        """Set of every live room id."""
        return "rooms:index"

    @staticmethod
    def player_room(player_id: str) -> str:
        """
        String containing the room_id the player currently occupies.
        A player has at most one room at a time.
        """
        return f"player:room:{player_id}"

    @staticmethod
    def matching_lock(mode: GameMode) -> str:
        """Advisory lock so only one scheduler matches a mode at a time."""
        return f"matchmaking:lock:{mode.value}"
