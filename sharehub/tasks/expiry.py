"""
Expiry sweep

Periodic job that flags resources whose expiration time has passed, and the
in-process scheduler that fires it on fixed wall-clock boundaries.
"""

from datetime import datetime
from typing import Awaitable, Callable, Optional, Set
import asyncio
import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharehub.core.config import settings
from sharehub.core.database import AsyncSessionLocal
from sharehub.services.resource import ResourceService

logger = logging.getLogger(__name__)


async def sweep_expired_resources(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    now: Optional[datetime] = None
) -> None:
    """
    Flag every expired, non-deleted resource in one bulk update.

    Never raises: a failed run is logged and the next run picks up the
    same rows.
    """
    session_factory = session_factory or AsyncSessionLocal
    logger.info("Running expiry sweep")

    try:
        async with session_factory() as session:
            flagged = await ResourceService(session).mark_expired_resources(now)
        logger.info(f"Expiry sweep flagged {flagged} resources")
    except Exception as e:
        logger.error(f"Error marking expired resources: {e}", exc_info=True)


class ExpirySweepScheduler:
    """Fires a job every `interval_seconds`, aligned to wall-clock multiples"""

    def __init__(
        self,
        interval_seconds: float,
        job: Callable[[], Awaitable[None]] = sweep_expired_resources
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.job = job
        self._task: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def seconds_until_next_run(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return self.interval_seconds - (now % self.interval_seconds)

    def next_run_after(self, now: float) -> float:
        return now + self.seconds_until_next_run(now)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="expiry-sweep-scheduler")
        logger.info(f"Expiry sweep scheduled every {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        for run in list(self._runs):
            run.cancel()
        await asyncio.gather(self._task, *self._runs, return_exceptions=True)
        self._task = None
        self._runs.clear()
        logger.info("Expiry sweep scheduler stopped")

    async def _loop(self) -> None:
        next_run = self.next_run_after(time.time())
        while True:
            # Sleep until the wall clock reaches the boundary, even if woken early
            while True:
                remaining = next_run - time.time()
                if remaining <= 0:
                    break
                await asyncio.sleep(remaining)

            # Runs are not serialised; a slow sweep may overlap the next one
            run = asyncio.create_task(self.job())
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)
            next_run = max(next_run + self.interval_seconds, self.next_run_after(time.time()))


# Global scheduler instance
expiry_scheduler = ExpirySweepScheduler(settings.EXPIRY_SWEEP_INTERVAL)
