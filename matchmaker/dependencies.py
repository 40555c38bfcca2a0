"""
Service Dependencies

Wires the matchmaking services around one Redis client and exposes them to
FastAPI routes through ``app.state.container``.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request, status

from matchmaker.config import Settings, get_settings
from matchmaker.models.game_mode import GameMode
from matchmaker.scheduler.jobs import CleanupJob, MatchingJob, StatsJob
from matchmaker.scheduler.schedulers import CleanupScheduler, MatchScheduler
from matchmaker.services.matchmaking_service import MatchmakingService
from matchmaker.services.notification_service import RoomNotifier
from matchmaker.services.queue_store import QueueStore, build_queue_stores
from matchmaker.services.room_service import RoomService
from matchmaker.services.room_store import RoomStore


@dataclass
class ServiceContainer:
    """Every long-lived service of one process."""

    redis: Optional[redis.Redis]
    settings: Settings
    queue_stores: Dict[GameMode, QueueStore]
    room_store: RoomStore
    room_service: RoomService
    notifier: RoomNotifier
    matchmaking_service: MatchmakingService
    match_scheduler: MatchScheduler
    cleanup_scheduler: CleanupScheduler


def build_container(client: redis.Redis, settings: Optional[Settings] = None) -> ServiceContainer:
    """Construct the service graph; nothing is started here."""
    settings = settings or get_settings()

    queue_stores = build_queue_stores(client, settings)
    room_store = RoomStore(client, settings)
    room_service = RoomService(room_store, settings)
    notifier = RoomNotifier(client, settings)
    matchmaking_service = MatchmakingService(queue_stores, room_service, notifier, settings)

    match_scheduler = MatchScheduler(
        MatchingJob(matchmaking_service, client, settings),
        StatsJob(matchmaking_service),
        settings,
    )
    cleanup_scheduler = CleanupScheduler(
        CleanupJob(queue_stores, room_service, settings),
        settings,
    )

    return ServiceContainer(
        redis=client,
        settings=settings,
        queue_stores=queue_stores,
        room_store=room_store,
        room_service=room_service,
        notifier=notifier,
        matchmaking_service=matchmaking_service,
        match_scheduler=match_scheduler,
        cleanup_scheduler=cleanup_scheduler,
    )


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up"
        )
    return container


def get_matchmaking_service(
    container: ServiceContainer = Depends(get_container)
) -> MatchmakingService:
    return container.matchmaking_service


def get_room_service(
    container: ServiceContainer = Depends(get_container)
) -> RoomService:
    return container.room_service
