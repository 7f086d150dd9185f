"""Capacity-1 in-flight slot for asynchronous extractions.

Overflow policy is drop-newest: while a job is running, new submissions are
refused and counted rather than queued.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional


class InFlightSlot:
    def __init__(self) -> None:
        self._task: Optional[asyncio.Task[Any]] = None
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, job: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task[Any]]:
        """Start ``job()`` as a task on the running loop, or return None if busy.

        ``job`` is only called when the slot is free, so no coroutine is
        created for a dropped frame.
        """
        if self.busy:
            self.dropped += 1
            return None
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(job())
        return self._task

    async def wait_idle(self) -> None:
        """Wait for the current job, if any, to settle; its outcome is ignored."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def reset_counters(self) -> None:
        self.dropped = 0


__all__ = ["InFlightSlot"]
