"""Document store interface.

The organizer treats persistence as a generic document store: JSON-like
records addressed by slash-separated paths, grouped into collections
(the path minus its last segment)::

    workspaces/{ws_id}                      collection "workspaces"
    workspaces/{ws_id}/pages/{page_id}      collection "workspaces/{ws_id}/pages"

The store offers per-record reads, collection queries with a tiny predicate
language (equality and array membership), atomic multi-record batches, and
live subscriptions that deliver the full matching record set first
immediately and then after every commit touching the collection.

Concurrent writers are last-write-wins.  A write may opt into an
optimistic-concurrency check with ``expected_updated_at``; the stores raise
``ConflictError`` when the record's ``updatedAt`` no longer matches.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from folio.organizer.models.enums import WhereOp, WriteKind

DEFAULT_MAX_BATCH_SIZE = 500


@dataclass(frozen=True)
class Where:
    """Single query predicate."""

    field: str
    op: WhereOp
    value: Any

    def matches(self, record: Mapping[str, Any]) -> bool:
        actual = record.get(self.field)
        if self.op == WhereOp.EQ:
            return actual == self.value
        if self.op == WhereOp.ARRAY_CONTAINS:
            return isinstance(actual, list) and self.value in actual
        msg = f"Unsupported predicate operator: {self.op}"
        raise ValueError(msg)


def matches_all(record: Mapping[str, Any], where: list[Where] | None) -> bool:
    return all(w.matches(record) for w in where or ())


@dataclass(frozen=True)
class WriteOp:
    """One write inside an atomic batch.

    ``set`` replaces the record, ``update`` merges *fields* into an existing
    record (dotted keys address nested maps, e.g. ``"data.text"``), and
    ``delete`` removes it.  ``update`` and ``delete`` fail the whole batch
    with ``NotFoundError`` when the record is missing.
    """

    kind: WriteKind
    path: str
    fields: dict[str, Any] = field(default_factory=dict)
    expected_updated_at: int | None = None


def set_op(path: str, fields: dict[str, Any]) -> WriteOp:
    return WriteOp(WriteKind.SET, path, fields)


def update_op(path: str, fields: dict[str, Any], *, expected_updated_at: int | None = None) -> WriteOp:
    return WriteOp(WriteKind.UPDATE, path, fields, expected_updated_at)


def delete_op(path: str) -> WriteOp:
    return WriteOp(WriteKind.DELETE, path)


@dataclass(frozen=True)
class Snapshot:
    """Full current record set of a subscribed collection."""

    collection: str
    records: list[dict[str, Any]]


SnapshotCallback = Callable[[Snapshot], Awaitable[None] | None]


@runtime_checkable
class Subscription(Protocol):
    """Handle for a live query."""

    async def unsubscribe(self) -> None:
        """Detach.  No callback runs after this returns.  Idempotent."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Async protocol implemented by every storage backend."""

    max_batch_size: int

    def new_id(self) -> str:
        """Return a fresh client-side record id."""
        ...

    async def get(self, path: str) -> dict[str, Any]:
        """Read one record (with ``id``).  Raises ``NotFoundError`` if missing."""
        ...

    async def list(self, collection: str, where: list[Where] | None = None) -> list[dict[str, Any]]:
        """Read every record of *collection* matching *where* (with ``id``)."""
        ...

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: list[Where] | None = None,
    ) -> Subscription:
        """Start a live query.  May raise ``PreconditionError``."""
        ...

    async def batch_write(self, ops: list[WriteOp]) -> None:
        """Apply *ops* atomically.  Raises ``BatchTooLargeError`` above ``max_batch_size``."""
        ...

    async def close(self) -> None:
        """Detach every live subscription."""
        ...


# -- Path helpers ------------------------------------------------------------


def split_path(path: str) -> tuple[str, str]:
    """Split a record path into ``(collection, record_id)``.

    Raises ``ValueError`` for paths that do not address a record.
    """
    segments = path.strip("/").split("/")
    if len(segments) % 2 != 0 or any(not s for s in segments):
        msg = f"Not a record path: {path!r}"
        raise ValueError(msg)
    return "/".join(segments[:-1]), segments[-1]


def apply_update(current: dict[str, Any], fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *current* with *fields* merged in (dotted keys nest)."""
    merged = dict(current)
    for key, value in fields.items():
        head, *rest = key.split(".")
        if not rest:
            merged[head] = value
            continue
        nested = merged.get(head)
        nested = dict(nested) if isinstance(nested, dict) else {}
        merged[head] = apply_update(nested, {".".join(rest): value})
    return merged
