"""
Matchmaking Worker

Standalone process that drives matching and cleanup against Redis without
serving HTTP. Use it with RUN_SCHEDULERS=false on the API replicas so only
this process forms rooms.

This worker:
1. Runs the matching algorithm for every mode on a fixed interval
2. Logs queue and room stats
3. Reaps expired queue entries and stale rooms

Run with: python -m matchmaker.workers.matchmaking_worker
"""

import asyncio
import logging
import signal

from matchmaker.config import get_settings
from matchmaker.database import close_redis, init_redis, ping_redis
from matchmaker.dependencies import build_container
from matchmaker.utils.logging_setup import configure_logging


logger = logging.getLogger(__name__)


async def run_worker(stop_event: asyncio.Event = None):
    """Main worker loop. Runs until stop_event is set or SIGINT/SIGTERM."""
    settings = get_settings()
    stop_event = stop_event or asyncio.Event()

    logger.info("Starting matchmaking worker...")

    client = await init_redis(settings)
    if not await ping_redis(client):
        logger.error("Redis is not reachable; jobs will log failures until it is")

    container = build_container(client, settings)
    container.match_scheduler.start()
    container.cleanup_scheduler.start()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Cannot install handler for {sig.name} on this platform")

    logger.info("Worker started. Processing queues...")

    try:
        await stop_event.wait()
    finally:
        container.cleanup_scheduler.stop()
        container.match_scheduler.stop()
        await close_redis()
        logger.info("Matchmaking worker stopped")


def main():
    configure_logging(get_settings().log_level)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
