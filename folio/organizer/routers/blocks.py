"""Block endpoints (RPC-style), scoped to one page."""

from __future__ import annotations

from fastapi import APIRouter, status

from folio.organizer.deps import Actor, Store
from folio.organizer.managers import blocks as manager
from folio.organizer.models.api import BlockAdd, BlockAdded, BlockUpdate
from folio.organizer.models.records import Block

router = APIRouter(prefix="/workspaces/{workspace_id}/pages/{page_id}/blocks", tags=["blocks"])


@router.get("/list", response_model=list[Block])
async def list_blocks(workspace_id: str, page_id: str, store: Store) -> list[Block]:
    return await manager.list_blocks(store, workspace_id, page_id)


@router.post("/add", response_model=BlockAdded, status_code=status.HTTP_201_CREATED)
async def add_block(workspace_id: str, page_id: str, body: BlockAdd, store: Store, actor: Actor) -> BlockAdded:
    """Append a block to the page."""
    block_id = await manager.add_block(store, actor, workspace_id, page_id, body.type, body.data)
    return BlockAdded(block_id=block_id)


@router.post("/{block_id}/update", status_code=status.HTTP_204_NO_CONTENT)
async def update_block(
    workspace_id: str,
    page_id: str,
    block_id: str,
    body: BlockUpdate,
    store: Store,
    actor: Actor,
) -> None:
    """Merge the given keys into the block's data."""
    await manager.update_block_data(store, actor, workspace_id, page_id, block_id, body.data)


@router.post("/{block_id}/remove", status_code=status.HTTP_204_NO_CONTENT)
async def remove_block(workspace_id: str, page_id: str, block_id: str, store: Store, actor: Actor) -> None:
    await manager.remove_block(store, actor, workspace_id, page_id, block_id)
