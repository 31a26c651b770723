"""Page operations: create, rename, trash/restore, move, hard delete.

Every write is one atomic batch except ``hard_delete_page``, which deletes
blocks in chunks before removing the page.

Soft delete never cascades: children of a trashed page keep their own
``isDeleted`` flag, and restore only touches the page itself.  Hard delete
does not recurse into child pages either; their ``parentId`` is left
pointing at the removed page.
"""

from __future__ import annotations

from loguru import logger

from folio.organizer.errors import CascadeError, IllegalMoveError, NotFoundError
from folio.organizer.managers.common import (
    DEFAULT_CHUNK_SIZE,
    UNTITLED,
    delete_in_chunks,
    require_actor,
)
from folio.organizer.models.enums import WhereOp
from folio.organizer.models.records import (
    WORKSPACES,
    Page,
    blocks_path,
    page_path,
    pages_path,
    workspace_path,
)
from folio.organizer.ordering import compute_order, now_ms
from folio.organizer.store.base import DocumentStore, Where, set_op, update_op
from folio.organizer.tree import PageTree, build_tree, is_legal_move, live_pages, move_candidates, sort_key

HOME_TITLE = "Home"


def _clean_title(title: str | None) -> str:
    if title is None or not title.strip():
        return UNTITLED
    return title


# -- Read ----------------------------------------------------------------------


async def list_pages(store: DocumentStore, workspace_id: str, *, include_deleted: bool = False) -> list[Page]:
    """All pages of a workspace, unsorted.  Soft-deleted pages only on request."""
    records = await store.list(pages_path(workspace_id))
    pages = [Page.model_validate(r) for r in records]
    return pages if include_deleted else live_pages(pages)


async def get_page(store: DocumentStore, workspace_id: str, page_id: str) -> Page:
    """Get a page.  Raises ``NotFoundError`` if missing."""
    return Page.model_validate(await store.get(page_path(workspace_id, page_id)))


async def get_first_root_page_id(store: DocumentStore, workspace_id: str) -> str | None:
    """Id of the first live root page in display order, if any."""
    roots = [p for p in await list_pages(store, workspace_id) if p.parent_id is None]
    if not roots:
        return None
    return min(roots, key=sort_key).id


async def get_tree(store: DocumentStore, workspace_id: str) -> PageTree:
    """Render-ready tree of the workspace's live pages."""
    return build_tree(await list_pages(store, workspace_id))


async def get_move_candidates(store: DocumentStore, workspace_id: str, page_id: str) -> list[tuple[str, str, int]]:
    """Live pages *page_id* may be moved under, depth-first with their depth."""
    tree = await get_tree(store, workspace_id)
    return move_candidates(page_id, tree)


async def list_trashed_pages(store: DocumentStore, actor: str | None) -> list[tuple[str, Page]]:
    """Soft-deleted pages across every workspace the actor is a member of."""
    actor = require_actor(actor)
    workspaces = await store.list(WORKSPACES, [Where("memberIds", WhereOp.ARRAY_CONTAINS, actor)])
    trashed: list[tuple[str, Page]] = []
    for workspace in workspaces:
        pages = await list_pages(store, workspace["id"], include_deleted=True)
        trashed.extend((workspace["id"], p) for p in pages if p.is_deleted)
    return trashed


# -- Create --------------------------------------------------------------------


async def create_page(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    parent_id: str | None = None,
    title: str = UNTITLED,
) -> str:
    """Create a page at the end of its sibling group and return its id.

    Raises ``NotFoundError`` if the workspace or the parent page is missing.
    """
    require_actor(actor)
    await store.get(workspace_path(workspace_id))

    pages = await list_pages(store, workspace_id, include_deleted=True)
    if parent_id is not None and parent_id not in {p.id for p in pages}:
        raise NotFoundError(page_path(workspace_id, parent_id))

    siblings = [p for p in live_pages(pages) if p.parent_id == parent_id]
    last = max((p.order or 0 for p in siblings), default=None)

    now = now_ms()
    page = Page(
        id=store.new_id(),
        title=_clean_title(title),
        parent_id=parent_id,
        order=compute_order(last, None),
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    await store.batch_write([set_op(page_path(workspace_id, page.id), page.to_fields())])
    logger.info("Page created: {} (workspace={}, parent={})", page.id, workspace_id, parent_id)
    return page.id


async def ensure_home_page(store: DocumentStore, actor: str | None, workspace_id: str) -> str:
    """Return the workspace's home page id, creating "Home" when no live page exists.

    Prefers a live page titled "home" (any case), then the first live page in
    display order.
    """
    require_actor(actor)
    live = await list_pages(store, workspace_id)
    for page in live:
        if page.title.lower() == HOME_TITLE.lower():
            return page.id
    if live:
        return min(live, key=sort_key).id

    now = now_ms()
    page = Page(id=store.new_id(), title=HOME_TITLE, order=0, created_at=now, updated_at=now)
    await store.batch_write([set_op(page_path(workspace_id, page.id), page.to_fields())])
    logger.info("Home page created: {} (workspace={})", page.id, workspace_id)
    return page.id


# -- Update --------------------------------------------------------------------


async def rename_page(store: DocumentStore, actor: str | None, workspace_id: str, page_id: str, title: str) -> None:
    """Rename a page.  A blank title becomes "Untitled"."""
    require_actor(actor)
    fields = {"title": _clean_title(title), "updatedAt": now_ms()}
    await store.batch_write([update_op(page_path(workspace_id, page_id), fields)])


async def soft_delete_page(store: DocumentStore, actor: str | None, workspace_id: str, page_id: str) -> None:
    """Move a page to the trash.  Its children are left untouched."""
    await _set_deleted(store, actor, workspace_id, page_id, deleted=True)


async def restore_page(store: DocumentStore, actor: str | None, workspace_id: str, page_id: str) -> None:
    """Bring a page back from the trash at the position its stored order gives it."""
    await _set_deleted(store, actor, workspace_id, page_id, deleted=False)


async def _set_deleted(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    page_id: str,
    *,
    deleted: bool,
) -> None:
    require_actor(actor)
    fields = {"isDeleted": deleted, "updatedAt": now_ms()}
    await store.batch_write([update_op(page_path(workspace_id, page_id), fields)])
    logger.info("Page {}: {} (workspace={})", "trashed" if deleted else "restored", page_id, workspace_id)


async def move_page(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    page_id: str,
    new_parent_id: str | None,
    final_sibling_order: list[str],
) -> None:
    """Reparent and/or reorder a page in one batch.

    *final_sibling_order* is the complete destination sibling group after the
    drop, the moved page included.  Every listed page gets ``order = index``,
    so the group is renumbered instead of squeezing a midpoint in.

    Raises ``IllegalMoveError`` before any write when *new_parent_id* is the
    page itself or one of its descendants, ``ValueError`` when the sibling
    list is malformed, and ``NotFoundError`` for unknown pages.
    """
    require_actor(actor)
    if final_sibling_order.count(page_id) != 1:
        msg = f"final_sibling_order must list page '{page_id}' exactly once"
        raise ValueError(msg)
    if len(set(final_sibling_order)) != len(final_sibling_order):
        msg = "final_sibling_order contains duplicate page ids"
        raise ValueError(msg)

    # The guard needs the whole parent graph, trashed pages included.
    pages = await list_pages(store, workspace_id, include_deleted=True)
    known = {p.id for p in pages}
    if page_id not in known:
        raise NotFoundError(page_path(workspace_id, page_id))
    if new_parent_id is not None and new_parent_id not in known:
        raise NotFoundError(page_path(workspace_id, new_parent_id))

    tree = build_tree(pages)
    if not is_legal_move(page_id, new_parent_id, tree.children_by_parent):
        raise IllegalMoveError(page_id, new_parent_id)

    now = now_ms()
    ops = []
    for index, sibling_id in enumerate(final_sibling_order):
        fields: dict = {"order": index, "updatedAt": now}
        if sibling_id == page_id:
            fields["parentId"] = new_parent_id
        ops.append(update_op(page_path(workspace_id, sibling_id), fields))

    await store.batch_write(ops)
    logger.info(
        "Page moved: {} -> parent={} at index {} (workspace={})",
        page_id,
        new_parent_id,
        final_sibling_order.index(page_id),
        workspace_id,
    )


# -- Delete --------------------------------------------------------------------


async def hard_delete_page(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    page_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Permanently delete a page and its blocks.  Not reversible.

    Blocks go first, in chunks of *chunk_size*.  Failed chunks are logged and
    the remaining chunks still run; if any failed, the page record is kept so
    the delete can be retried, and ``CascadeError`` is raised.
    """
    require_actor(actor)
    path = page_path(workspace_id, page_id)
    await store.get(path)

    failures = await purge_blocks(store, workspace_id, page_id, chunk_size=chunk_size)
    if not failures:
        failures = await delete_in_chunks(store, [path], chunk_size=chunk_size, label=f"page {page_id}")
    if failures:
        raise CascadeError(path, failures)
    logger.info("Page hard-deleted: {} (workspace={})", page_id, workspace_id)


async def purge_blocks(
    store: DocumentStore,
    workspace_id: str,
    page_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[tuple[str, BaseException]]:
    """Delete every block of a page in chunks.  Returns the failed chunks."""
    collection = blocks_path(workspace_id, page_id)
    block_paths = [f"{collection}/{b['id']}" for b in await store.list(collection)]
    return await delete_in_chunks(store, block_paths, chunk_size=chunk_size, label=f"blocks of page {page_id}")
