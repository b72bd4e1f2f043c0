"""Bounded asyncio worker pools with cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


class Cancelled(Exception):
    """The governing CancelScope was cancelled while work was in flight."""


class CancelScope:
    """A cancellation flag shared by everything in one generation run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def race(self, aw: Awaitable[T]) -> T:
        """Await aw unless the scope is cancelled first.

        Raises:
            Cancelled: the scope was cancelled before aw finished; aw is
                cancelled too.
        """
        if self.cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise Cancelled()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if task not in done:
            raise Cancelled()
        return task.result()


class WorkerPool(Generic[T]):
    """A queue of items drained by at most ``size`` concurrent workers.

    ``admit`` is asked before each item is started; once it says no, the
    asking worker stops pulling. Items already started are never aborted by
    it.
    """

    def __init__(
        self,
        size: int,
        handler: Callable[[T], Awaitable[None]],
        scope: CancelScope,
        *,
        admit: Optional[Callable[[T], bool]] = None,
        name: str = "pool",
    ) -> None:
        self.size = max(1, size)
        self.handler = handler
        self.scope = scope
        self.admit = admit
        self.name = name

    async def run(self, items: Iterable[T]) -> None:
        """Process items and return once every worker has exited."""
        queue: asyncio.Queue = asyncio.Queue()
        for item in items:
            queue.put_nowait(item)
        if queue.empty():
            return

        workers: List[asyncio.Task] = [
            asyncio.ensure_future(self._worker(queue, i))
            for i in range(min(self.size, queue.qsize()))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for w in workers:
                if not w.done():
                    w.cancel()

    async def _worker(self, queue: asyncio.Queue, index: int) -> None:
        while not self.scope.cancelled:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if self.admit is not None and not self.admit(item):
                logger.debug("%s worker %d: limit reached, stopping", self.name, index)
                return
            await self.handler(item)
