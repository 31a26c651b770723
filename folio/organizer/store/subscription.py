"""Queue-backed subscription shared by the store implementations.

Each subscription owns one dispatcher task draining its own queue, so
snapshots reach the callback strictly in order and never concurrently for
the same subscription.  Separate subscriptions run independently.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable

from loguru import logger

from folio.organizer.store.base import Snapshot, SnapshotCallback


class QueueSubscription:
    """Delivers pushed snapshots to a callback, one at a time."""

    def __init__(
        self,
        collection: str,
        callback: SnapshotCallback,
        *,
        on_close: Callable[[QueueSubscription], Awaitable[None] | None] | None = None,
    ) -> None:
        self.collection = collection
        self._callback = callback
        self._on_close = on_close
        self._queue: asyncio.Queue[Snapshot] = asyncio.Queue()
        self._closed = False
        self._task = asyncio.create_task(self._run(), name=f"subscription:{collection}")

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot: Snapshot) -> None:
        if not self._closed:
            self._queue.put_nowait(snapshot)

    async def flush(self) -> None:
        """Wait until every pushed snapshot has been delivered."""
        if not self._closed:
            await self._queue.join()

    async def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            result = self._on_close(self)
            if inspect.isawaitable(result):
                await result
        # Called from inside our own callback: the dispatcher exits on its own.
        if asyncio.current_task() is self._task:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        # Release anyone blocked in flush().
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _run(self) -> None:
        while not self._closed:
            snapshot = await self._queue.get()
            try:
                if self._closed:
                    return
                result = self._callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscription callback failed (collection={})", self.collection)
            finally:
                self._queue.task_done()
