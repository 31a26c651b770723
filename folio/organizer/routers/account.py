"""Account-level endpoints: landing workspace, trash, deactivation."""

from __future__ import annotations

from fastapi import APIRouter, status

from folio.organizer.deps import Actor, ChunkSize, Store
from folio.organizer.managers import pages as page_manager
from folio.organizer.managers import workspaces as workspace_manager
from folio.organizer.models.api import TrashedPage, TrashResponse, WorkspaceCreated

router = APIRouter(prefix="/account", tags=["account"])


@router.post("/bootstrap", response_model=WorkspaceCreated)
async def bootstrap(store: Store, actor: Actor) -> WorkspaceCreated:
    """Return the workspace and page to open after sign-in, creating "Hub" / "Home" if needed."""
    workspace_id, page_id = await workspace_manager.ensure_hub_and_home(store, actor)
    return WorkspaceCreated(workspace_id=workspace_id, page_id=page_id)


@router.get("/trash", response_model=TrashResponse)
async def get_trash(store: Store, actor: Actor) -> TrashResponse:
    """Trashed workspaces and pages the acting user can restore or purge."""
    workspaces = await workspace_manager.list_trashed_workspaces(store, actor)
    pages = await page_manager.list_trashed_pages(store, actor)
    return TrashResponse(
        workspaces=workspaces,
        pages=[TrashedPage(workspace_id=ws_id, page=page) for ws_id, page in pages],
    )


@router.post("/deactivate", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate(store: Store, actor: Actor, chunk_size: ChunkSize) -> None:
    """Delete every owned workspace and leave all the others."""
    await workspace_manager.deactivate_account(store, actor, chunk_size=chunk_size)
