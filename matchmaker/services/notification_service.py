"""Notification Service - room-formed events over Redis pub/sub."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from matchmaker.config import Settings, get_settings
from matchmaker.models.game_room import GameRoom
from matchmaker.models.matchmaking import RoomNotificationEvent


logger = logging.getLogger(__name__)

RoomFormedHandler = Callable[[RoomNotificationEvent], Awaitable[Any]]


class RoomNotifier:
    """
    Publishes room-formed events on a single shared channel.

    Fire-and-forget: a failed publish is logged and dropped. It never
    propagates to the caller and never undoes the room that was formed.
    """

    def __init__(self, client: redis.Redis, settings: Optional[Settings] = None):
        self.client = client
        settings = settings or get_settings()
        self.channel = settings.room_notifications_channel

    async def publish_room_formed(self, room: GameRoom) -> bool:
        """Publish ``{roomId, players, mode, timestamp}``. Returns False on failure."""
        try:
            event = RoomNotificationEvent.from_room(room)
            receivers = await self.client.publish(self.channel, event.to_json())
            logger.debug(
                f"Room-formed event for {room.room_id} published to {receivers} subscriber(s)"
            )
            return True
        except Exception as e:
            logger.error(f"Failed to publish room notification for {room.room_id}: {e}")
            return False


class RoomNotificationListener:
    """
    Subscribes to the room-formed channel and hands every event to a handler.

    Uses its own pub/sub connection. Runs as a background task between
    start() and stop(). When the connection drops, the listener logs it,
    waits NOTIFICATION_RESUBSCRIBE_DELAY_SECONDS and subscribes again.
    """

    def __init__(
        self,
        client: redis.Redis,
        handler: RoomFormedHandler,
        settings: Optional[Settings] = None
    ):
        self.client = client
        self.handler = handler
        settings = settings or get_settings()
        self.channel = settings.room_notifications_channel
        self.resubscribe_delay = settings.notification_resubscribe_delay_seconds
        self.resubscribe_count = 0
        self._pubsub = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.is_running:
            logger.warning("Room notification listener already running")
            return
        await self._subscribe()
        self._task = asyncio.create_task(self._listen())
        logger.info(f"Subscribed to channel: {self.channel}")

    async def stop(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("Room notification listener stopped")

    async def _subscribe(self):
        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.subscribe(self.channel)

    async def _drop_pubsub(self):
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.debug(f"Closing dead pub/sub connection failed: {e}")

    async def _listen(self):
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    self.resubscribe_count += 1
                    logger.info(f"Resubscribed to channel: {self.channel}")
                async for message in self._pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await self.dispatch(message.get("data"))
                # listen() only ends once the channel is unsubscribed
                return
            except (RedisError, OSError) as e:
                logger.error(
                    f"Room notification subscription lost: {e}. "
                    f"Resubscribing in {self.resubscribe_delay}s"
                )
                await self._drop_pubsub()
                await asyncio.sleep(self.resubscribe_delay)

    async def dispatch(self, raw: Any) -> None:
        """Decode one payload and pass it on. Bad payloads and handler errors are logged."""
        try:
            event = RoomNotificationEvent.from_json(raw)
        except Exception as e:
            logger.error(f"Ignoring malformed room notification: {e}")
            return

        logger.info(
            f"Room notification received: {event.room_id} "
            f"({event.mode}, players={event.players})"
        )
        try:
            await self.handler(event)
        except Exception as e:
            logger.error(f"Room notification handler failed for {event.room_id}: {e}", exc_info=True)
