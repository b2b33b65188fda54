"""
Background maintenance - periodic session sweep, decoupled from request handling.
"""

import logging
import time

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Runs ``SessionStore.sweep`` on a fixed interval.

    Lifecycle is owned by the caller: ``start()`` inside a running event
    loop (the app lifespan), ``shutdown()`` on exit.
    """

    JOB_ID = "session_sweep"

    def __init__(self, session_store: SessionStore, interval_minutes: int = 60):
        self.session_store = session_store
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    async def run_once(self) -> int:
        """Run a single sweep pass and return the number of sessions removed."""
        start_time = time.time()
        removed = await self.session_store.sweep()
        logger.debug(
            f"Session sweep finished: removed={removed}, "
            f"duration_ms={(time.time() - start_time) * 1000:.2f}"
        )
        return removed

    def start(self) -> None:
        """Start the scheduler (idempotent)."""
        if self._started:
            return

        self.scheduler.add_job(
            self.run_once,
            IntervalTrigger(minutes=self.interval_minutes),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._started = True
        logger.info(f"Session sweeper started: every {self.interval_minutes} minutes")

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for a running sweep."""
        if not self._started:
            return
        self.scheduler.shutdown(wait=False)
        self._started = False
        logger.info("Session sweeper stopped")
