from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger("task_spawner")


class TaskSpawner:
    """
    Owner of fire-and-forget background work.

    Keeps a strong reference to every task until it finishes, logs anything
    that escapes the coroutine, and lets shutdown wait for in-flight work.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.info("Background task cancelled name=%s", name)
            raise
        except Exception:
            logger.exception("Background task failed name=%s", name)

    async def drain(self, timeout: float = 30.0) -> None:
        if not self._tasks:
            return
        pending = list(self._tasks)
        logger.info("Draining %s background tasks", len(pending))
        done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled %s background tasks at shutdown", len(still_running))


spawner = TaskSpawner()
