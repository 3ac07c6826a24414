"""Minimal asyncio scheduler for the sync triggers.

run_now() starts a callback immediately, register_periodic() runs it on a
fixed interval. Both take zero-argument coroutine functions.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("starsync.scheduler")

Callback = Callable[[], Awaitable[object]]


class Scheduler:
    """Owns the background tasks started for sync triggers."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def task_names(self) -> list[str]:
        return list(self._tasks)

    def run_now(self, name: str, callback: Callback) -> asyncio.Task:
        """Schedule a single immediate execution of callback."""
        task = asyncio.create_task(self._run_once(name, callback), name=name)
        self._track(name, task)
        return task

    def register_periodic(
        self, name: str, interval_seconds: float, callback: Callback
    ) -> asyncio.Task:
        """Run callback every interval_seconds, first run after one interval.

        Raises:
            ValueError: If interval_seconds is not positive or name is taken
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if name in self._tasks:
            raise ValueError(f"Job '{name}' is already registered")
        task = asyncio.create_task(
            self._tick(name, interval_seconds, callback), name=name
        )
        self._track(name, task)
        logger.info("Scheduled job '%s' every %ss", name, interval_seconds)
        return task

    async def shutdown(self) -> None:
        """Cancel all jobs and wait for them to finish."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _track(self, name: str, task: asyncio.Task) -> None:
        self._tasks[name] = task
        task.add_done_callback(lambda t: self._forget(name, t))

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._tasks.get(name) is task:
            del self._tasks[name]

    async def _run_once(self, name: str, callback: Callback) -> None:
        try:
            await callback()
        except Exception:
            logger.exception("Job '%s' failed", name)

    async def _tick(self, name: str, interval_seconds: float, callback: Callback) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            logger.info("Scheduled job '%s' is starting...", name)
            await self._run_once(name, callback)
