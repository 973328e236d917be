"""
Worker Scheduler
================

APScheduler wrapper that invokes the triage worker at a fixed interval.

Overlap protection comes from two places: APScheduler's ``max_instances=1``
within this process, and the run sentinel across processes (e.g. a cron
invocation running alongside).
"""

from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "triage_tick"


class WorkerScheduler:
    """
    Manages the lifecycle of the scheduler and its single job.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[object]]) -> None:
        """Start the scheduler with the given tick function."""
        if self._running:
            logger.warning("Worker scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id=JOB_ID,
            name="Triage Worker Tick",
            misfire_grace_time=self.interval_seconds,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info("Worker scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Worker scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
