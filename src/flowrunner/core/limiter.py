"""
Concurrency limiter: bounds active workflow runs, FIFO admission for the rest
"""
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Mapping, Optional

from ..models.workflow import Workflow
from ..models.execution import Execution


logger = logging.getLogger(__name__)


RunCallable = Callable[[Workflow, Optional[Mapping[str, Any]]], Awaitable[Execution]]


class ConcurrencyLimiter:
    """
    Admits at most ``max_concurrent`` runs at a time.

    Callers beyond the limit wait in a FIFO queue. When a run finishes its slot
    is handed directly to the oldest waiter, so admission order equals arrival
    order. The active count and the queue are only touched in code paths that
    never await, which keeps them consistent on a single event loop.
    """

    def __init__(self, run: RunCallable, max_concurrent: int = 10):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._run = run
        self.max_concurrent = max_concurrent
        self._active = 0
        self._queue: Deque[asyncio.Future] = deque()
        self.peak_active = 0
        self.total_submitted = 0
        self.total_completed = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def queued(self) -> int:
        return sum(1 for waiter in self._queue if not waiter.done())

    async def submit(self, workflow: Workflow, input_data: Optional[Mapping[str, Any]] = None) -> Execution:
        """Run the workflow once capacity allows; resolves after the run ends"""
        self.total_submitted += 1
        await self._acquire()
        try:
            return await self._run(workflow, input_data)
        finally:
            self.total_completed += 1
            self._release()

    async def _acquire(self):
        if self._active < self.max_concurrent and not self.queued:
            self._admit()
            return

        waiter = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        logger.debug(f"Run queued ({self.queued} waiting, {self._active} active)")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # the slot was handed over before the cancellation landed
                self._release()
            else:
                try:
                    self._queue.remove(waiter)
                except ValueError:
                    pass
            raise

    def _admit(self):
        self._active += 1
        self.peak_active = max(self.peak_active, self._active)

    def _release(self):
        while self._queue:
            waiter = self._queue.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._active -= 1

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_executions": self._active,
            "queued_executions": self.queued,
            "max_concurrent": self.max_concurrent,
            "peak_active": self.peak_active,
            "total_submitted": self.total_submitted,
            "total_completed": self.total_completed,
        }
