"""Page endpoints (RPC-style), scoped to one workspace.

All write operations use POST; reads use GET.  ``/stream`` pushes the live
tree as server-sent events: one ``tree`` event right away, then one after
every change to the workspace's pages.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Query, status
from sse_starlette.sse import EventSourceResponse

from folio.organizer.deps import Actor, ChunkSize, Store
from folio.organizer.managers import pages as manager
from folio.organizer.models.api import (
    FirstRootResponse,
    MoveCandidate,
    PageCreate,
    PageCreated,
    PageMove,
    PageRename,
    TreeResponse,
)
from folio.organizer.models.records import Page, workspace_path
from folio.organizer.projection import iter_tree_updates
from folio.organizer.store.base import DocumentStore

router = APIRouter(prefix="/workspaces/{workspace_id}/pages", tags=["pages"])


# -- Collection ----------------------------------------------------------------


@router.post("/create", response_model=PageCreated, status_code=status.HTTP_201_CREATED)
async def create_page(workspace_id: str, body: PageCreate, store: Store, actor: Actor) -> PageCreated:
    """Create a page at the end of its sibling group."""
    page_id = await manager.create_page(store, actor, workspace_id, body.parent_id, body.title)
    return PageCreated(page_id=page_id)


@router.get("/list", response_model=list[Page])
async def list_pages(
    workspace_id: str,
    store: Store,
    include_deleted: bool = Query(False, description="Include trashed pages."),
) -> list[Page]:
    return await manager.list_pages(store, workspace_id, include_deleted=include_deleted)


@router.get("/tree", response_model=TreeResponse)
async def get_tree(workspace_id: str, store: Store) -> TreeResponse:
    """Current render-ready tree of live pages."""
    return TreeResponse.from_tree(await manager.get_tree(store, workspace_id))


@router.get("/first-root", response_model=FirstRootResponse)
async def get_first_root(workspace_id: str, store: Store) -> FirstRootResponse:
    return FirstRootResponse(page_id=await manager.get_first_root_page_id(store, workspace_id))


@router.get("/stream")
async def stream_tree(workspace_id: str, store: Store) -> EventSourceResponse:
    """Stream the live tree until the client disconnects."""
    await store.get(workspace_path(workspace_id))
    return EventSourceResponse(_tree_events(store, workspace_id))


async def _tree_events(store: DocumentStore, workspace_id: str) -> AsyncIterator[dict]:
    async for tree in iter_tree_updates(store, workspace_id):
        yield {"event": "tree", "data": TreeResponse.from_tree(tree).model_dump_json(by_alias=True)}


# -- Single page ---------------------------------------------------------------


@router.get("/{page_id}/get", response_model=Page)
async def get_page(workspace_id: str, page_id: str, store: Store) -> Page:
    return await manager.get_page(store, workspace_id, page_id)


@router.post("/{page_id}/rename", status_code=status.HTTP_204_NO_CONTENT)
async def rename_page(workspace_id: str, page_id: str, body: PageRename, store: Store, actor: Actor) -> None:
    await manager.rename_page(store, actor, workspace_id, page_id, body.title)


@router.post("/{page_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(workspace_id: str, page_id: str, store: Store, actor: Actor) -> None:
    """Move a page to the trash."""
    await manager.soft_delete_page(store, actor, workspace_id, page_id)


@router.post("/{page_id}/restore", status_code=status.HTTP_204_NO_CONTENT)
async def restore_page(workspace_id: str, page_id: str, store: Store, actor: Actor) -> None:
    await manager.restore_page(store, actor, workspace_id, page_id)


@router.post("/{page_id}/move", status_code=status.HTTP_204_NO_CONTENT)
async def move_page(workspace_id: str, page_id: str, body: PageMove, store: Store, actor: Actor) -> None:
    """Reparent and/or reorder a page.  409 when the target is inside the page's subtree."""
    await manager.move_page(store, actor, workspace_id, page_id, body.new_parent_id, body.final_sibling_order)


@router.post("/{page_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_page(workspace_id: str, page_id: str, store: Store, actor: Actor, chunk_size: ChunkSize) -> None:
    """Permanently delete a page and its blocks."""
    await manager.hard_delete_page(store, actor, workspace_id, page_id, chunk_size=chunk_size)


@router.get("/{page_id}/move-candidates", response_model=list[MoveCandidate])
async def get_move_candidates(workspace_id: str, page_id: str, store: Store) -> list[MoveCandidate]:
    """Pages this page may be moved under, depth-first."""
    candidates = await manager.get_move_candidates(store, workspace_id, page_id)
    return [MoveCandidate(page_id=pid, title=title, depth=depth) for pid, title, depth in candidates]
