"""Matchmaker Services Package"""

from matchmaker.services.redis_keys import RedisKeys
from matchmaker.services.queue_store import QueueStore, build_queue_stores
from matchmaker.services.room_store import RoomStore
from matchmaker.services.room_service import RoomService
from matchmaker.services.matchmaking_service import MatchmakingService
from matchmaker.services.notification_service import RoomNotifier, RoomNotificationListener

__all__ = [
    "RedisKeys",
    "QueueStore",
    "build_queue_stores",
    "RoomStore",
    "RoomService",
    "MatchmakingService",
    "RoomNotifier",
    "RoomNotificationListener",
]
