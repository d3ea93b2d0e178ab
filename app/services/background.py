"""
BackgroundTaskSupervisor: owns fire-and-forget work launched by HTTP handlers.

Handlers never await these tasks. The supervisor keeps a strong reference
until each task finishes (asyncio only holds weak ones), logs any terminal
exception with its traceback, and cancels whatever is still running on
shutdown. Completion is observable only through the transcript endpoint.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class BackgroundTaskSupervisor:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def is_running(self, name: str) -> bool:
        return any(t.get_name() == name and not t.done() for t in self._tasks)

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_event_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.info("Background task %s started (%d running)", name, len(self._tasks))
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("Background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=exc)
        else:
            logger.info("Background task %s finished", task.get_name())

    async def join(self, timeout: float | None = None) -> None:
        """Wait for the tasks running now. Failures are already logged, not raised."""
        if not self._tasks:
            return
        await asyncio.wait(list(self._tasks), timeout=timeout)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("Cancelling %d background task(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
