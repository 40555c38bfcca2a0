"""Matchmaker Routers Package"""

from matchmaker.routers import (
    matchmaking,
    health,
    websocket,
    scheduler,
)

__all__ = [
    "matchmaking",
    "health",
    "websocket",
    "scheduler",
]
