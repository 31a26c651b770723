"""Helpers shared by the managers."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TypeVar

from loguru import logger

from folio.organizer.errors import FolioError, NotAuthenticatedError
from folio.organizer.store.base import DocumentStore, delete_op

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 450
"""Deletes per batch in cascades, below the usual 500-op batch ceiling."""

UNTITLED = "Untitled"


def require_actor(actor: str | None) -> str:
    """Return *actor* or raise ``NotAuthenticatedError`` when it is missing."""
    if not actor:
        raise NotAuthenticatedError
    return actor


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


async def delete_in_chunks(
    store: DocumentStore,
    paths: Sequence[str],
    *,
    chunk_size: int,
    label: str,
) -> list[tuple[str, BaseException]]:
    """Delete *paths* in atomic chunks, continuing past failed chunks.

    The chunk size is capped at the store's batch limit.  Returns the failed
    chunks as ``(description, exception)`` pairs; each failure is logged.
    """
    size = max(1, min(chunk_size, store.max_batch_size))
    failures: list[tuple[str, BaseException]] = []
    for index, chunk in enumerate(chunked(paths, size)):
        try:
            await store.batch_write([delete_op(path) for path in chunk])
        except FolioError as exc:
            description = f"{label} chunk {index} ({len(chunk)} records)"
            logger.error("Cascade delete: {} failed: {}", description, exc)
            failures.append((description, exc))
    return failures
