"""
Matchmaker Database Module

Redis connection management.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from matchmaker.config import Settings, get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Redis Connection
# =============================================================================

class RedisClient:
    """Redis connection manager."""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


def create_redis_client(settings: Optional[Settings] = None) -> redis.Redis:
    """Build a Redis client from settings without registering it."""
    settings = settings or get_settings()
    return redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=settings.redis_health_check_interval,
        socket_connect_timeout=settings.redis_timeout_seconds,
        socket_timeout=settings.redis_timeout_seconds,
        retry_on_timeout=True,
        socket_keepalive=True
    )


async def init_redis(settings: Optional[Settings] = None) -> redis.Redis:
    """Initialize Redis connection."""
    if redis_client.client is None:
        redis_client.client = create_redis_client(settings)
        logger.info("Redis client created")
    return redis_client.client


async def close_redis():
    """Close Redis connection."""
    if redis_client.client:
        await redis_client.client.aclose()
        redis_client.client = None
        logger.info("Redis connection closed")


async def ping_redis(client: redis.Redis) -> bool:
    """Health check: True if Redis answers PING."""
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
