"""SQL document store (SQLAlchemy async).

Records live in the ``documents`` table (see ``db/tables.py``).  A batch is
one database transaction, so it commits entirely or not at all.

Live subscriptions are fed one of two ways:

- **Redis** (when a client is configured): every commit publishes the touched
  collections on ``folio:changes``; each subscription listens and re-queries
  its collection.  Works across processes.
- **Polling** (no Redis, or after the Redis feed drops): each subscription
  re-queries every ``poll_interval`` seconds and is nudged immediately by
  commits made through this store instance.  Snapshots are only delivered
  when the record set changed.

Driver and broker failures surface as ``TransientStoreError``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from folio.organizer.db.tables import Document
from folio.organizer.errors import (
    BatchTooLargeError,
    ConflictError,
    NotFoundError,
    PreconditionError,
    TransientStoreError,
)
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

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from redis.asyncio.client import PubSub
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

CHANGES_CHANNEL = "folio:changes"


@contextlib.contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate driver errors into ``TransientStoreError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.warning("SQL store: {} failed: {}", action, exc)
        msg = f"{action} failed: {exc}"
        raise TransientStoreError(msg) from exc


@dataclass
class _Watch:
    task: asyncio.Task | None = None
    pubsub: PubSub | None = None
    nudge: asyncio.Event = field(default_factory=asyncio.Event)


class SqlDocumentStore:
    """SQLAlchemy implementation of the DocumentStore protocol."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        redis: aioredis.Redis | None = None,
        poll_interval: float = 1.0,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> None:
        self.max_batch_size = max_batch_size
        self._session_factory = session_factory
        self._redis = redis
        self._poll_interval = poll_interval
        self._watches: dict[QueueSubscription, _Watch] = {}

    def new_id(self) -> str:
        return uuid.uuid4().hex

    # -- Read ------------------------------------------------------------------

    async def get(self, path: str) -> dict[str, Any]:
        _, record_id = split_path(path)
        with _store_errors(f"get {path}"):
            async with self._session_factory() as db:
                row = await db.get(Document, path.strip("/"))
        if row is None:
            raise NotFoundError(path)
        return {"id": record_id, **row.data}

    async def list(self, collection: str, where: list[Where] | None = None) -> list[dict[str, Any]]:
        stmt = select(Document).where(Document.collection == collection.strip("/")).order_by(Document.path)
        with _store_errors(f"list {collection}"):
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                rows = list(result.scalars().all())
        return [{"id": row.doc_id, **row.data} for row in rows if matches_all(row.data, where)]

    # -- Write -----------------------------------------------------------------

    async def batch_write(self, ops: list[WriteOp]) -> None:
        if len(ops) > self.max_batch_size:
            raise BatchTooLargeError(len(ops), self.max_batch_size)
        if not ops:
            return

        touched: set[str] = set()
        with _store_errors("batch write"):
            async with self._session_factory() as db, db.begin():
                for op in ops:
                    collection, doc_id = split_path(op.path)
                    await self._apply(db, op, collection, doc_id)
                    touched.add(collection)

        logger.debug("SQL store: committed {} writes ({})", len(ops), ", ".join(sorted(touched)))
        await self._publish(touched)

    @staticmethod
    async def _apply(db: AsyncSession, op: WriteOp, collection: str, doc_id: str) -> None:
        key = op.path.strip("/")
        row = await db.get(Document, key, with_for_update=True)
        if op.kind != WriteKind.SET and row is None:
            raise NotFoundError(op.path)
        if op.expected_updated_at is not None:
            current = row.data if row is not None else {}
            if current.get("updatedAt") != op.expected_updated_at:
                raise ConflictError(op.path)

        if op.kind == WriteKind.SET:
            if row is None:
                db.add(Document(path=key, collection=collection, doc_id=doc_id, data=dict(op.fields)))
            else:
                row.data = dict(op.fields)
        elif op.kind == WriteKind.UPDATE:
            row.data = apply_update(row.data, op.fields)  # type: ignore[union-attr]
        else:
            await db.delete(row)
        await db.flush()

    async def _publish(self, collections: set[str]) -> None:
        for subscription, watch in self._watches.items():
            if watch.pubsub is None and subscription.collection in collections:
                watch.nudge.set()
        if self._redis is None:
            return
        try:
            await self._redis.publish(CHANGES_CHANNEL, json.dumps(sorted(collections)))
        except RedisError as exc:
            # The commit stands; live views catch up on the next notification.
            logger.warning("SQL store: change notification failed: {}", exc)

    # -- Subscribe -------------------------------------------------------------

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: list[Where] | None = None,
    ) -> QueueSubscription:
        collection = collection.strip("/")
        watch = _Watch()
        if self._redis is not None:
            try:
                watch.pubsub = self._redis.pubsub()
                await watch.pubsub.subscribe(CHANGES_CHANNEL)
            except RedisError as exc:
                msg = f"Change feed unavailable: {exc}"
                raise PreconditionError(msg) from exc

        try:
            records = await self.list(collection, where)
        except TransientStoreError:
            await self._close_pubsub(watch)
            raise
        subscription = QueueSubscription(collection, callback, on_close=self._detach)
        subscription.push(Snapshot(collection, records))
        self._watches[subscription] = watch
        watch.task = asyncio.create_task(
            self._watch(subscription, watch, where, records), name=f"sql-watch:{collection}"
        )
        logger.debug("SQL store: subscribed to {} ({})", collection, "redis" if watch.pubsub else "polling")
        return subscription

    async def _detach(self, subscription: QueueSubscription) -> None:
        watch = self._watches.pop(subscription, None)
        if watch is None:
            return
        if watch.task is not None and watch.task is not asyncio.current_task():
            watch.task.cancel()
            try:
                with contextlib.suppress(asyncio.CancelledError):
                    await watch.task
            except Exception:
                logger.exception("SQL store: watch on {} ended with an error", subscription.collection)
        await self._close_pubsub(watch)

    @staticmethod
    async def _close_pubsub(watch: _Watch) -> None:
        pubsub, watch.pubsub = watch.pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe(CHANGES_CHANNEL)
            await pubsub.aclose()
        except RedisError as exc:
            logger.warning("SQL store: closing change feed failed: {}", exc)

    async def _watch(
        self,
        subscription: QueueSubscription,
        watch: _Watch,
        where: list[Where] | None,
        last: list[dict[str, Any]],
    ) -> None:
        if watch.pubsub is not None:
            try:
                async for message in watch.pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    if subscription.collection in json.loads(message["data"]):
                        last = await self._refresh(subscription, where, last)
                return
            except RedisError as exc:
                # Fall back to polling; the refresh below catches up on missed changes.
                logger.warning("SQL store: change feed lost for {}, polling instead: {}", subscription.collection, exc)
            await self._close_pubsub(watch)
            last = await self._refresh(subscription, where, last)

        while not subscription.closed:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(watch.nudge.wait(), timeout=self._poll_interval)
            watch.nudge.clear()
            last = await self._refresh(subscription, where, last)

    async def _refresh(
        self,
        subscription: QueueSubscription,
        where: list[Where] | None,
        last: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        try:
            records = await self.list(subscription.collection, where)
        except TransientStoreError:
            return last
        if records != last:
            subscription.push(Snapshot(subscription.collection, records))
        return records

    # -- Lifecycle -------------------------------------------------------------

    async def close(self) -> None:
        """Detach every live subscription."""
        for subscription in list(self._watches):
            await subscription.unsubscribe()
