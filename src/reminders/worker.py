"""Periodic reminder worker.

Two independent loops, started from the FastAPI lifespan:
- scan: queue reminders for upcoming appointments (every 5 min by default)
- dispatch: send due reminders (every 2 min by default)

The loops share nothing in memory; they meet only in the reminder_jobs
table. Running several worker processes is safe for the same reason.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.config import settings
from src.reminders.dispatcher import dispatch_all
from src.reminders.scheduler import scan_all

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


async def run_periodically(name: str, job: Job, interval: float) -> None:
    """Run ``job`` now and then every ``interval`` seconds until cancelled."""
    logger.info("Reminder %s loop started (every %ss)", name, interval)
    while True:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Reminder %s loop iteration failed", name)
        await asyncio.sleep(interval)


class ReminderWorker:
    """Owns the scan and dispatch tasks."""

    def __init__(
        self,
        scan_job: Job = scan_all,
        dispatch_job: Job = dispatch_all,
        scan_interval: float | None = None,
        dispatch_interval: float | None = None,
    ) -> None:
        self._scan_job = scan_job
        self._dispatch_job = dispatch_job
        self._scan_interval = scan_interval or settings.reminders.reminder_scan_interval_seconds
        self._dispatch_interval = dispatch_interval or settings.reminders.reminder_dispatch_interval_seconds
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        if self.running:
            logger.warning("Reminder worker already running")
            return
        self._tasks = [
            asyncio.create_task(
                run_periodically("scan", self._scan_job, self._scan_interval),
                name="reminder-scan",
            ),
            asyncio.create_task(
                run_periodically("dispatch", self._dispatch_job, self._dispatch_interval),
                name="reminder-dispatch",
            ),
        ]
        logger.info("Reminder worker started")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Reminder worker stopped")


# Module-level singleton
reminder_worker = ReminderWorker()
