"""Task Status Scheduler: periodic completion sweep on the event loop.

The first sweep runs as soon as the scheduler starts; later sweeps follow
every ``interval_minutes``. Sweeps run inline on the event loop, between
requests, so there is never more than one in flight.

Usage:
    scheduler = TaskStatusScheduler(manager=lifecycle_manager, interval_minutes=2)
    await scheduler.start()
    # ... app runs ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from app.lifecycle.manager import TaskLifecycleManager

logger = logging.getLogger(__name__)


class TaskStatusScheduler:
    """Owns the background task that keeps task statuses current.

    One instance per process, created in the app lifespan. ``start`` on a
    running scheduler and ``stop`` on a stopped one do nothing.
    """

    def __init__(
        self,
        manager: TaskLifecycleManager,
        interval_minutes: float = 2.0,
        enabled: bool = True,
    ) -> None:
        self.manager = manager
        self.interval_seconds = interval_minutes * 60
        self.enabled = enabled
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if not self.enabled:
            logger.info("Task status sweep disabled by configuration")
            return
        if self._task is not None:
            logger.warning("Task status sweep already scheduled")
            return

        self._task = asyncio.create_task(self._run_forever(), name="task-status-sweep")
        logger.info("Task status sweep scheduled every %.1f min", self.interval_seconds / 60)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Task status sweep stopped")

    async def _run_forever(self) -> None:
        while True:
            await self._sweep_once()
            await asyncio.sleep(self.interval_seconds)

    async def _sweep_once(self) -> None:
        try:
            self.manager.sweep()
        except Exception as e:
            # sweep() handles store errors itself; anything here is unexpected
            logger.error("Task status sweep crashed: %s", e, exc_info=True)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_status(self) -> dict:
        """Scheduler state for the health check."""
        last_run = self.manager.last_run_at
        return {
            "enabled": self.enabled,
            "running": self.is_running,
            "interval_minutes": self.interval_seconds / 60,
            "last_run_at": last_run.isoformat() if last_run else None,
            "last_updated_count": self.manager.last_updated_count,
        }
