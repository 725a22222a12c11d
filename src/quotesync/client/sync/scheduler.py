"""Scheduler for automatic background sync.

This module provides:
- AutoSyncScheduler: runs a sync callback at a fixed interval until stopped

The scheduler is an explicit, cancellable task owned by the engine. It
never starts on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "auto_sync"


class AutoSyncScheduler:
    """Runs a callback every `interval` seconds on a background thread."""

    def __init__(
        self,
        callback: Callable[[], object],
        interval: float = 60.0,
    ) -> None:
        """Initialize the scheduler.

        Args:
            callback: Job to run; its exceptions are logged, never raised.
            interval: Seconds between runs.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._scheduler: BackgroundScheduler | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def _job(self) -> None:
        """Job function for the scheduled sync."""
        logger.debug("Auto-sync triggered")
        try:
            self._callback()
        except Exception:
            logger.exception("Error during scheduled sync")

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return  # Already running

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._job,
            trigger=IntervalTrigger(seconds=self._interval),
            id=JOB_ID,
            name="Periodic sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Auto-sync started (every %.0fs)", self._interval)

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler.

        Args:
            wait: Block until a job already running has finished.
        """
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Auto-sync stopped")

    def run_now(self) -> None:
        """Run the job immediately on the calling thread."""
        self._job()
