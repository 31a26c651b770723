"""In-process document store.

Keeps records in a dict keyed by path and pushes snapshots to subscribers
right after each committed batch.  Batches are staged on a copy and swapped
in only when every op succeeded, so readers never see a partial batch.

Used as the default backend for single-process deployments and in tests.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from typing import Any

from loguru import logger

from folio.organizer.errors import BatchTooLargeError, ConflictError, NotFoundError
from folio.organizer.models.enums import WriteKind
from folio.organizer.store.base import (
    DEFAULT_MAX_BATCH_SIZE,
    Snapshot,
    SnapshotCallback,
    Where,
    WriteOp,
    apply_update,
    matches_all,
    split_path,
)
from folio.organizer.store.subscription import QueueSubscription


class MemoryDocumentStore:
    """Dict-backed implementation of the DocumentStore protocol."""

    def __init__(self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE) -> None:
        self.max_batch_size = max_batch_size
        self._docs: dict[str, dict[str, Any]] = {}
        self._subscriptions: list[tuple[QueueSubscription, list[Where] | None]] = []
        self._lock = asyncio.Lock()

    def new_id(self) -> str:
        return uuid.uuid4().hex

    # -- Read ------------------------------------------------------------------

    async def get(self, path: str) -> dict[str, Any]:
        _, record_id = split_path(path)
        fields = self._docs.get(path.strip("/"))
        if fields is None:
            raise NotFoundError(path)
        return {"id": record_id, **copy.deepcopy(fields)}

    async def list(self, collection: str, where: list[Where] | None = None) -> list[dict[str, Any]]:
        return self._query(self._docs, collection.strip("/"), where)

    # -- Subscribe -------------------------------------------------------------

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: list[Where] | None = None,
    ) -> QueueSubscription:
        collection = collection.strip("/")
        subscription = QueueSubscription(collection, callback, on_close=self._detach)
        self._subscriptions.append((subscription, where))
        subscription.push(Snapshot(collection, self._query(self._docs, collection, where)))
        logger.debug("Memory store: subscribed to {}", collection)
        return subscription

    def _detach(self, subscription: QueueSubscription) -> None:
        self._subscriptions = [(s, w) for s, w in self._subscriptions if s is not subscription]

    async def flush(self) -> None:
        """Wait until every subscriber has received all pending snapshots."""
        for subscription, _ in list(self._subscriptions):
            await subscription.flush()

    async def close(self) -> None:
        """Detach every live subscription."""
        for subscription, _ in list(self._subscriptions):
            await subscription.unsubscribe()

    # -- Write -----------------------------------------------------------------

    async def batch_write(self, ops: list[WriteOp]) -> None:
        if len(ops) > self.max_batch_size:
            raise BatchTooLargeError(len(ops), self.max_batch_size)
        if not ops:
            return

        async with self._lock:
            staged = dict(self._docs)
            touched: set[str] = set()
            for op in ops:
                collection, _ = split_path(op.path)
                key = op.path.strip("/")
                current = staged.get(key)
                if op.kind != WriteKind.SET and current is None:
                    raise NotFoundError(op.path)
                if op.expected_updated_at is not None and (current or {}).get("updatedAt") != op.expected_updated_at:
                    raise ConflictError(op.path)

                if op.kind == WriteKind.SET:
                    staged[key] = copy.deepcopy(op.fields)
                elif op.kind == WriteKind.UPDATE:
                    staged[key] = apply_update(current, copy.deepcopy(op.fields))  # type: ignore[arg-type]
                else:
                    del staged[key]
                touched.add(collection)

            self._docs = staged
            self._notify(touched)

    def _notify(self, collections: set[str]) -> None:
        for subscription, where in self._subscriptions:
            if subscription.collection in collections:
                subscription.push(Snapshot(subscription.collection, self._query(self._docs, subscription.collection, where)))

    # -- Helpers ---------------------------------------------------------------

    @staticmethod
    def _query(docs: dict[str, dict[str, Any]], collection: str, where: list[Where] | None) -> list[dict[str, Any]]:
        records = []
        for key, fields in docs.items():
            parent, record_id = split_path(key)
            if parent == collection and matches_all(fields, where):
                records.append({"id": record_id, **copy.deepcopy(fields)})
        return records
