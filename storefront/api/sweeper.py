"""
Background purge of expired OTP records.

Runs on the event loop as a task owned by the application lifespan. Each
pass executes the blocking delete in a worker thread. A failed pass is
logged and the loop keeps its schedule; cancellation stops it.
"""

import asyncio
import logging
from collections.abc import Callable

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


async def run_otp_sweeper(purge: Callable[[], int], interval_seconds: float) -> None:
    """Call purge() every interval_seconds until cancelled."""
    logger.info("OTP sweeper started (interval %ss)", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(purge)
        except Exception:
            logger.exception("OTP sweep failed")


def start_otp_sweeper(purge: Callable[[], int], interval_seconds: float) -> asyncio.Task:
    return asyncio.create_task(run_otp_sweeper(purge, interval_seconds), name="otp-sweeper")


async def stop_otp_sweeper(task: asyncio.Task) -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        logger.info("OTP sweeper stopped")
