"""Block operations: the ordered content list of a page."""

from __future__ import annotations

from typing import Any

from folio.organizer.managers.common import require_actor
from folio.organizer.models.enums import BlockType
from folio.organizer.models.records import Block, block_path, blocks_path, page_path
from folio.organizer.ordering import now_ms
from folio.organizer.store.base import DocumentStore, delete_op, set_op, update_op


async def list_blocks(store: DocumentStore, workspace_id: str, page_id: str) -> list[Block]:
    """Blocks of a page in display order."""
    records = await store.list(blocks_path(workspace_id, page_id))
    blocks = [Block.model_validate(r) for r in records]
    return sorted(blocks, key=lambda b: b.order or 0)


async def add_block(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    page_id: str,
    block_type: BlockType = BlockType.TEXT,
    data: dict[str, Any] | None = None,
) -> str:
    """Append a block after the last one and return its id.

    Raises ``NotFoundError`` if the page is missing.
    """
    require_actor(actor)
    await store.get(page_path(workspace_id, page_id))
    existing = await list_blocks(store, workspace_id, page_id)
    last = (existing[-1].order or 0) if existing else -1

    now = now_ms()
    if data is None:
        data = {"text": ""} if block_type == BlockType.TEXT else {}
    block = Block(id=store.new_id(), type=block_type, order=last + 1, data=data, created_at=now, updated_at=now)
    await store.batch_write([set_op(block_path(workspace_id, page_id, block.id), block.to_fields())])
    return block.id


async def update_block_data(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    page_id: str,
    block_id: str,
    data: dict[str, Any],
) -> None:
    """Merge *data* into the block's ``data`` map, key by key."""
    require_actor(actor)
    fields: dict[str, Any] = {f"data.{key}": value for key, value in data.items()}
    fields["updatedAt"] = now_ms()
    await store.batch_write([update_op(block_path(workspace_id, page_id, block_id), fields)])


async def remove_block(store: DocumentStore, actor: str | None, workspace_id: str, page_id: str, block_id: str) -> None:
    require_actor(actor)
    await store.batch_write([delete_op(block_path(workspace_id, page_id, block_id))])
