"""
Daily Refresh Scheduler

Rebuilds every cached playlist once a day at a fixed local wall-clock time.
A failed rebuild keeps the previous (stale) playlist in the cache.
"""

import asyncio
import logging
from datetime import datetime, time, timedelta
from time import monotonic
from typing import Callable, Optional

from playlist_gateway.services.playlist_service import PlaylistService

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, run_at: time = time(0, 0, 5)) -> float:
    """Seconds from ``now`` until the next local occurrence of ``run_at``."""
    target = datetime.combine(now.date(), run_at)
    if target <= now:
        target = datetime.combine(now.date() + timedelta(days=1), run_at)
    return (target - now).total_seconds()


class RefreshScheduler:
    """Background task that refreshes all cached playlists daily."""

    def __init__(
        self,
        service: PlaylistService,
        run_at: time = time(0, 0, 5),
        interval: timedelta = timedelta(hours=24),
        clock: Callable[[], float] = monotonic,
    ):
        self.service = service
        self.run_at = run_at
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._stats = {
            "passes": 0,
            "last_pass": None,
            "refreshed": 0,
            "failed": 0,
        }

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_stats(self) -> dict:
        return {**self._stats, "running": self.running}

    def start(self):
        """Start the scheduler loop."""
        if self.running:
            logger.warning("Refresh scheduler already running")
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Refresh scheduler started (daily at {self.run_at.isoformat()})")

    async def stop(self):
        """Cancel the scheduler loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Refresh scheduler stopped")

    async def _loop(self):
        delay = seconds_until_next_run(datetime.now(), self.run_at)
        logger.info(f"First playlist refresh in {delay:.0f}s")
        # Deadlines advance by exactly one interval, independent of pass duration
        deadline = self._clock() + delay

        while True:
            await asyncio.sleep(max(0.0, deadline - self._clock()))
            logger.info("Running daily playlist refresh...")
            await self.run_once()
            deadline += self.interval.total_seconds()

    async def run_once(self) -> dict:
        """Refresh every cached key once. Returns counts of outcomes."""
        keys = self.service.cache.keys()
        results = await asyncio.gather(
            *[self.service.refresh(key) for key in keys],
            return_exceptions=True,
        )

        refreshed = 0
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.error(f"Refresh of {key.label} raised: {result}")
            elif result:
                refreshed += 1

        failed = len(keys) - refreshed
        self._stats["passes"] += 1
        self._stats["last_pass"] = datetime.now().isoformat()
        self._stats["refreshed"] += refreshed
        self._stats["failed"] += failed
        logger.info(f"Daily refresh complete: {refreshed}/{len(keys)} playlists updated")
        return {"total": len(keys), "refreshed": refreshed, "failed": failed}
