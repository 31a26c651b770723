"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  Thin HTTP adapter --
delegates to the workspace manager; domain errors are mapped to status
codes by the app-level handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from folio.organizer.deps import Actor, ChunkSize, Store
from folio.organizer.managers import workspaces as manager
from folio.organizer.models.api import (
    MembersAdd,
    WorkspaceCreate,
    WorkspaceCreated,
    WorkspaceRename,
    WorkspaceReorder,
)
from folio.organizer.models.records import Workspace

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post("/create", response_model=WorkspaceCreated, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, store: Store, actor: Actor) -> WorkspaceCreated:
    """Create a workspace together with its "Home" page."""
    workspace_id, page_id = await manager.create_workspace(store, actor, body.name)
    return WorkspaceCreated(workspace_id=workspace_id, page_id=page_id)


@router.get("/list", response_model=list[Workspace])
async def list_workspaces(
    store: Store,
    actor: Actor,
    include_deleted: bool = Query(False, description="Include trashed workspaces."),
) -> list[Workspace]:
    """List the acting user's workspaces in display order."""
    return await manager.list_workspaces(store, actor, include_deleted=include_deleted)


@router.post("/reorder", status_code=status.HTTP_204_NO_CONTENT)
async def reorder_workspaces(body: WorkspaceReorder, store: Store, actor: Actor) -> None:
    await manager.reorder_workspaces(store, actor, body.ordered_ids)


@router.get("/{workspace_id}/get", response_model=Workspace)
async def get_workspace(workspace_id: str, store: Store) -> Workspace:
    return await manager.get_workspace(store, workspace_id)


@router.post("/{workspace_id}/rename", status_code=status.HTTP_204_NO_CONTENT)
async def rename_workspace(workspace_id: str, body: WorkspaceRename, store: Store, actor: Actor) -> None:
    await manager.rename_workspace(store, actor, workspace_id, body.name)


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: str, store: Store, actor: Actor) -> None:
    """Move a workspace to the trash."""
    await manager.soft_delete_workspace(store, actor, workspace_id)


@router.post("/{workspace_id}/restore", status_code=status.HTTP_204_NO_CONTENT)
async def restore_workspace(workspace_id: str, store: Store, actor: Actor) -> None:
    await manager.restore_workspace(store, actor, workspace_id)


@router.post("/{workspace_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_workspace(workspace_id: str, store: Store, actor: Actor, chunk_size: ChunkSize) -> None:
    """Permanently delete a workspace with all its pages and blocks."""
    await manager.hard_delete_workspace(store, actor, workspace_id, chunk_size=chunk_size)


@router.post("/{workspace_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_workspace(workspace_id: str, store: Store, actor: Actor) -> None:
    await manager.leave_workspace(store, actor, workspace_id)


@router.post("/{workspace_id}/members/add", status_code=status.HTTP_204_NO_CONTENT)
async def add_members(workspace_id: str, body: MembersAdd, store: Store, actor: Actor) -> None:
    await manager.add_members(store, actor, workspace_id, body.user_ids)
