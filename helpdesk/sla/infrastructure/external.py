"""
SLA External Integrations
=========================

APScheduler wrapper running the periodic breach sweep.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SLAScheduler:
    """
    Wrapper for APScheduler for the background SLA sweep.

    The first sweep runs as soon as the scheduler starts, then every
    ``interval_minutes``. Stopping cancels future runs only; a sweep that is
    already running is left to finish.
    """

    JOB_ID = "sla_breach_sweep"

    def __init__(self, interval_minutes: int = 5):
        self.interval_minutes = interval_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[object]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)

        self._scheduler.add_job(
            job_func,
            "interval",
            minutes=self.interval_minutes,
            id=self.JOB_ID,
            name="SLA Breach Sweep",
            next_run_time=datetime.now(timezone.utc),
            misfire_grace_time=60,
            coalesce=True,
            max_instances=1,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"interval_minutes": self.interval_minutes}
        )

    async def stop(self) -> None:
        """Cancel future sweeps without waiting for one in flight."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
