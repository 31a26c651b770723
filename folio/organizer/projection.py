"""Live view of a workspace's page tree.

Subscribes to the workspace's pages collection, and on every snapshot drops
soft-deleted pages, rebuilds the tree and hands it to the observer.  The
query has no server-side ``isDeleted`` filter so it never needs a composite
index; filtering happens here.

When the store refuses the live query (``PreconditionError``, e.g. a missing
index or an unavailable change feed) the projection falls back to a single
fetch, trading freshness for availability.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from loguru import logger

from folio.organizer.errors import PreconditionError
from folio.organizer.models.records import Page, pages_path
from folio.organizer.store.base import DocumentStore, Snapshot, Subscription
from folio.organizer.tree import PageTree, build_tree, live_pages

TreeCallback = Callable[[PageTree], Awaitable[None] | None]
Unsubscribe = Callable[[], Awaitable[None]]


class LiveTreeProjection:
    """Keeps the render-ready tree of one workspace in sync with the store.

    ``tree`` always holds the latest published tree (``None`` before the
    first snapshot).  Each snapshot replaces it wholesale.
    """

    def __init__(self, store: DocumentStore, workspace_id: str, on_update: TreeCallback | None = None) -> None:
        self.workspace_id = workspace_id
        self.tree: PageTree | None = None
        self.live = False
        self._store = store
        self._on_update = on_update
        self._subscription: Subscription | None = None
        self._closed = False

    async def start(self) -> None:
        collection = pages_path(self.workspace_id)
        try:
            self._subscription = await self._store.subscribe(collection, self._on_snapshot)
        except PreconditionError as exc:
            logger.warning(
                "Live query unavailable for workspace {} ({}); falling back to a one-shot fetch",
                self.workspace_id,
                exc,
            )
            await self._publish(await self._store.list(collection))
            return
        self.live = True
        logger.debug("Projection started for workspace {}", self.workspace_id)

    async def stop(self) -> None:
        """Detach from the store.  No observer call happens after this returns."""
        self._closed = True
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
            logger.debug("Projection stopped for workspace {}", self.workspace_id)

    async def _on_snapshot(self, snapshot: Snapshot) -> None:
        if self._closed:
            return
        await self._publish(snapshot.records)

    async def _publish(self, records: list[dict[str, Any]]) -> None:
        tree = build_tree(live_pages(Page.model_validate(r) for r in records))
        self.tree = tree
        if self._on_update is None:
            return
        result = self._on_update(tree)
        if inspect.isawaitable(result):
            await result


async def subscribe_tree(store: DocumentStore, workspace_id: str, on_update: TreeCallback) -> Unsubscribe:
    """Call *on_update* with a fresh tree on every change; return the detach function."""
    projection = LiveTreeProjection(store, workspace_id, on_update)
    await projection.start()
    return projection.stop


async def iter_tree_updates(store: DocumentStore, workspace_id: str) -> AsyncIterator[PageTree]:
    """Yield the workspace tree now and after every change, until closed."""
    # Holds only the newest tree; an unread one is replaced.
    queue: asyncio.Queue[PageTree] = asyncio.Queue(maxsize=1)

    def offer(tree: PageTree) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(tree)

    unsubscribe = await subscribe_tree(store, workspace_id, offer)
    try:
        while True:
            yield await queue.get()
    finally:
        await unsubscribe()
