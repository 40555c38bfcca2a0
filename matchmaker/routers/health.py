"""
Health Router

Liveness, readiness and component health of the matchmaker.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from matchmaker import __version__
from matchmaker.database import ping_redis
from matchmaker.dependencies import ServiceContainer, get_container
from matchmaker.utils.timezone_utils import utc_now


router = APIRouter()


def _component(ok: bool) -> dict:
    return {"status": "UP" if ok else "DOWN"}


def _scheduler_ok(container: ServiceContainer) -> bool:
    # A process that leaves matching to a dedicated worker is healthy without it
    if not container.settings.run_schedulers:
        return True
    return container.match_scheduler.is_running()


@router.get("")
async def health(container: ServiceContainer = Depends(get_container)):
    """UP only if Redis answers and the match scheduler is running."""
    redis_ok = await ping_redis(container.redis)
    scheduler_ok = _scheduler_ok(container)
    healthy = redis_ok and scheduler_ok

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "UP" if healthy else "DOWN",
            "timestamp": utc_now().isoformat(),
            "components": {
                "redis": _component(redis_ok),
                "scheduler": _component(scheduler_ok),
            },
        },
    )


@router.get("/live")
async def liveness():
    return {"status": "UP", "timestamp": utc_now().isoformat()}


@router.get("/ready")
async def readiness(container: ServiceContainer = Depends(get_container)):
    if not await ping_redis(container.redis):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "DOWN",
                "reason": "Redis unavailable",
                "timestamp": utc_now().isoformat(),
            },
        )
    return {"status": "UP", "timestamp": utc_now().isoformat()}


@router.get("/detailed")
async def detailed_health(container: ServiceContainer = Depends(get_container)):
    """Component health plus queue sizes and room count."""
    redis_ok = await ping_redis(container.redis)
    scheduler_ok = _scheduler_ok(container)
    healthy = redis_ok and scheduler_ok
    stats = await container.matchmaking_service.get_stats()

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "UP" if healthy else "DOWN",
            "timestamp": utc_now().isoformat(),
            "service": {
                "name": container.settings.app_name,
                "version": __version__,
            },
            "components": {
                "redis": _component(redis_ok),
                "scheduler": _component(scheduler_ok),
                "cleanup": _component(
                    not container.settings.run_schedulers
                    or container.cleanup_scheduler.is_running()
                ),
            },
            "metrics": {
                "pvpQueueSize": stats.pvp_queue_size,
                "bossQueueSize": stats.boss_queue_size,
                "totalRooms": stats.total_rooms,
            },
        },
    )
