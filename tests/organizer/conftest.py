"""Shared fixtures for organizer tests.

Everything here runs on the in-memory document store, so no Docker is
required.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from folio.organizer.app import app
from folio.organizer.deps import USER_HEADER
from folio.organizer.managers.workspaces import create_workspace
from folio.organizer.store.memory import MemoryDocumentStore

ALICE = "alice"


@pytest.fixture
async def store() -> AsyncIterator[MemoryDocumentStore]:
    memory = MemoryDocumentStore()
    yield memory
    await memory.close()


@pytest.fixture
async def workspace(store: MemoryDocumentStore) -> tuple[str, str]:
    """Alice's workspace as ``(workspace_id, home_page_id)``."""
    return await create_workspace(store, ALICE, "Alice's space")


@pytest.fixture
async def client(store: MemoryDocumentStore) -> AsyncIterator[AsyncClient]:
    """Async HTTP client acting as Alice, wired to the in-memory store.

    The app lifespan does NOT run under ``ASGITransport``, so the store is
    pre-set on ``app.state``.
    """
    app.state.store = store
    app.state.db_engine = None
    app.state.redis = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers={USER_HEADER: ALICE}) as ac:
        yield ac

    app.state.store = None
