"""FastAPI dependency injection for the document store and the acting user.

Usage in route handlers::

    @router.post("/create")
    async def create_thing(body: ThingCreate, store: Store, actor: Actor) -> ThingCreated:
        ...

The acting user id is read from the ``X-Folio-User`` header.  Resolving who
that user is belongs to the gateway in front of this service; a missing
header is passed through as ``None`` and the managers reject it with
``NotAuthenticatedError`` (HTTP 401).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from folio.organizer.settings import get_settings
from folio.organizer.store.base import DocumentStore

USER_HEADER = "X-Folio-User"


def get_store(request: Request) -> DocumentStore:
    """Return the document store created during lifespan."""
    store: DocumentStore | None = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not initialised.",
        )
    return store


def get_actor(x_folio_user: Annotated[str | None, Header(alias=USER_HEADER)] = None) -> str | None:
    return x_folio_user or None


def get_chunk_size() -> int:
    return get_settings().batch_chunk_size


# -- Annotated type aliases for concise route signatures ---------------------

Store = Annotated[DocumentStore, Depends(get_store)]
"""Annotated dependency: the shared document store."""

Actor = Annotated[str | None, Depends(get_actor)]
"""Annotated dependency: acting user id from ``X-Folio-User`` (``None`` if absent)."""

ChunkSize = Annotated[int, Depends(get_chunk_size)]
"""Annotated dependency: writes per batch for cascading deletes."""
