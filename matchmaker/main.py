"""
Matchmaker - FastAPI Application

Main application entry point with middleware, routers, exception handlers
and the lifecycle of the schedulers and the room-formed listener.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from matchmaker import __version__
from matchmaker.config import Settings, get_settings
from matchmaker.database import close_redis, init_redis, ping_redis
from matchmaker.dependencies import build_container
from matchmaker.exceptions import ErrorKind, MatchmakingError
from matchmaker.middleware.rate_limit import RateLimitMiddleware
from matchmaker.models.matchmaking import ErrorResponse
from matchmaker.routers import health, matchmaking, scheduler, websocket
from matchmaker.services.notification_service import RoomNotificationListener
from matchmaker.utils.logging_setup import configure_logging
from matchmaker.utils.timezone_utils import now_ms


logger = logging.getLogger(__name__)


STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Startup: Redis, service container, schedulers, room-formed listener.
    Shutdown: the same in reverse.
    """
    settings: Settings = app.state.settings

    client = await init_redis(settings)
    if await ping_redis(client):
        logger.info("Redis connected")
    else:
        logger.error("FAILED to connect to Redis")

    container = build_container(client, settings)
    app.state.container = container

    if settings.run_schedulers:
        container.match_scheduler.start()
        container.cleanup_scheduler.start()
    else:
        logger.info("Schedulers disabled in this process")

    listener = None
    if settings.run_notification_listener:
        listener = RoomNotificationListener(client, websocket.manager.handle_room_formed, settings)
        try:
            await listener.start()
        except Exception as e:
            logger.error(f"Failed to start room notification listener: {e}")
            listener = None

    logger.info(f"{settings.app_name} {__version__} started")

    yield

    # Shutdown
    if listener:
        await listener.stop()
    container.cleanup_scheduler.stop()
    container.match_scheduler.stop()
    await close_redis()
    app.state.container = None
    logger.info(f"{settings.app_name} stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Matchmaker API",
        description="""
    Queue-based matchmaking for multiplayer game modes.

    ## Features
    - Per-mode FIFO queues (PVP, BOSS)
    - Periodic matching into rooms of mode-specific capacity
    - Room lifecycle: FORMING, READY, IN_PROGRESS, FINISHED
    - Room-formed notifications over WebSocket
    - Automatic cleanup of stale queue entries and rooms
    """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = None

    # =========================================================================
    # Middleware
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RateLimitMiddleware, settings=settings)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(MatchmakingError)
    async def matchmaking_exception_handler(request: Request, exc: MatchmakingError):
        status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", []) if part != "body"),
                "message": error.get("msg"),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "VALIDATION_ERROR",
                "kind": ErrorKind.VALIDATION.value,
                "message": "Invalid request",
                "validationErrors": errors,
                "timestamp": now_ms(),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler for unhandled errors.

        Never leaks internal error details.
        """
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        body = ErrorResponse(
            error="INTERNAL_SERVER_ERROR",
            message="Something went wrong. Please try again later.",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.to_dict(),
        )

    # =========================================================================
    # Routers
    # =========================================================================

    app.include_router(
        matchmaking.router,
        prefix=f"{settings.api_prefix}/matchmaking",
        tags=["Matchmaking"],
    )

    app.include_router(scheduler.router, prefix=settings.api_prefix, tags=["Scheduler"])

    app.include_router(health.router, prefix="/health", tags=["Health"])

    app.include_router(websocket.router, prefix="/ws", tags=["WebSocket"])

    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


configure_logging(get_settings().log_level)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("matchmaker.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
