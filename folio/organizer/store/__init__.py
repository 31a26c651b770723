"""Document store protocol and its backends."""

from folio.organizer.store.base import DocumentStore, Snapshot, Subscription, Where, WriteOp
from folio.organizer.store.memory import MemoryDocumentStore
from folio.organizer.store.sql import SqlDocumentStore

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "Snapshot",
    "SqlDocumentStore",
    "Subscription",
    "Where",
    "WriteOp",
]
