# porteria/services/scheduler.py
"""
Periodic station jobs, run as asyncio tasks for the life of the app:

  - reservation expiry sweep   (every RESERVATION_EXPIRY_INTERVAL_SECONDS)
  - live yard status push      (every LIVE_STATUS_INTERVAL_SECONDS)

Each loop survives its own failures and never touches the request path.
"""

import asyncio
from typing import Awaitable, Callable

from porteria.utils.logger import get_logger

logger = get_logger(__name__)


async def run_every(name: str, interval: float, job: Callable[[], Awaitable]):
    """Run `job` forever, `interval` seconds apart. Errors are logged, never raised."""
    logger.info(f"⏱  Job '{name}' started (every {interval}s)")
    while True:
        try:
            await job()
        except Exception as e:
            logger.error(f"Job '{name}' failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


def start_background_jobs(ctx) -> list[asyncio.Task]:
    """Launch the timers for an AppContext. Called once from the app lifespan."""
    settings = ctx.settings

    async def expire_reservations():
        await asyncio.to_thread(ctx.reservations.expire_overdue)

    async def push_live_status():
        await ctx.sync.push_live_status(ctx.session_factory)

    tasks = [
        asyncio.create_task(
            run_every("reservation-expiry", settings.RESERVATION_EXPIRY_INTERVAL_SECONDS, expire_reservations),
            name="reservation-expiry",
        ),
        asyncio.create_task(
            run_every("live-status", settings.LIVE_STATUS_INTERVAL_SECONDS, push_live_status),
            name="live-status",
        ),
    ]
    if not ctx.reservations.available:
        logger.warning("Reservations DB not configured, expiry sweep will be a no-op")
    return tasks


async def stop_background_jobs(tasks: list[asyncio.Task]):
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
