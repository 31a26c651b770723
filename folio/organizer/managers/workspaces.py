"""Workspace operations.

Encapsulates workspace bootstrap, listing, rename, trash/restore,
membership, reordering and the cascading hard delete.

An owner must always keep at least one active workspace they own: trashing
or hard-deleting the last one raises ``LastWorkspaceError``.  Only
``deactivate_account`` bypasses that rule.
"""

from __future__ import annotations

from loguru import logger

from folio.organizer.errors import CascadeError, FolioError, LastWorkspaceError
from folio.organizer.managers.common import DEFAULT_CHUNK_SIZE, delete_in_chunks, require_actor
from folio.organizer.managers.pages import HOME_TITLE, ensure_home_page, purge_blocks
from folio.organizer.models.enums import WhereOp
from folio.organizer.models.records import (
    WORKSPACES,
    Page,
    Workspace,
    page_path,
    pages_path,
    workspace_path,
)
from folio.organizer.ordering import now_ms
from folio.organizer.store.base import DocumentStore, Where, set_op, update_op

DEFAULT_NAME = "New Workspace"
HUB_NAME = "Hub"
UNTITLED_WORKSPACE = "Untitled workspace"


def _member_filter(actor: str) -> list[Where]:
    return [Where("memberIds", WhereOp.ARRAY_CONTAINS, actor)]


# -- Read ----------------------------------------------------------------------


async def list_workspaces(
    store: DocumentStore,
    actor: str | None,
    *,
    include_deleted: bool = False,
) -> list[Workspace]:
    """Workspaces the actor is a member of, by ``order``.

    Trashed workspaces are filtered client-side so the query stays a single
    membership predicate.
    """
    actor = require_actor(actor)
    records = await store.list(WORKSPACES, _member_filter(actor))
    workspaces = [Workspace.model_validate(r) for r in records]
    if not include_deleted:
        workspaces = [w for w in workspaces if not w.is_deleted]
    return sorted(workspaces, key=lambda w: w.order or 0)


async def list_trashed_workspaces(store: DocumentStore, actor: str | None) -> list[Workspace]:
    return [w for w in await list_workspaces(store, actor, include_deleted=True) if w.is_deleted]


async def get_workspace(store: DocumentStore, workspace_id: str) -> Workspace:
    """Get a workspace.  Raises ``NotFoundError`` if missing."""
    return Workspace.model_validate(await store.get(workspace_path(workspace_id)))


# -- Create --------------------------------------------------------------------


async def create_workspace(store: DocumentStore, actor: str | None, name: str = DEFAULT_NAME) -> tuple[str, str]:
    """Create a workspace with a "Home" page in one batch.

    Returns ``(workspace_id, page_id)``.  New workspaces sort last.
    """
    actor = require_actor(actor)
    now = now_ms()
    workspace = Workspace(
        id=store.new_id(),
        name=name if name.strip() else UNTITLED_WORKSPACE,
        owner_id=actor,
        member_ids=[actor],
        is_deleted=False,
        order=now,
        created_at=now,
        updated_at=now,
    )
    home = Page(id=store.new_id(), title=HOME_TITLE, order=0, created_at=now, updated_at=now)
    await store.batch_write([
        set_op(workspace_path(workspace.id), workspace.to_fields()),
        set_op(page_path(workspace.id, home.id), home.to_fields()),
    ])
    logger.info("Workspace created: {} (owner={})", workspace.id, actor)
    return workspace.id, home.id


async def ensure_hub_and_home(store: DocumentStore, actor: str | None) -> tuple[str, str]:
    """Return ``(workspace_id, page_id)`` to land the actor on after sign-in.

    Uses the first active workspace (by order) and its home page; creates a
    "Hub" workspace with a "Home" page when the actor has none.
    """
    actor = require_actor(actor)
    active = await list_workspaces(store, actor)
    if active:
        workspace = active[0]
        return workspace.id, await ensure_home_page(store, actor, workspace.id)
    return await create_workspace(store, actor, HUB_NAME)


# -- Update --------------------------------------------------------------------


async def rename_workspace(store: DocumentStore, actor: str | None, workspace_id: str, name: str) -> None:
    require_actor(actor)
    fields = {"name": name if name.strip() else UNTITLED_WORKSPACE, "updatedAt": now_ms()}
    await store.batch_write([update_op(workspace_path(workspace_id), fields)])


async def soft_delete_workspace(store: DocumentStore, actor: str | None, workspace_id: str) -> None:
    """Move a workspace to the trash.  Raises ``LastWorkspaceError`` for the owner's last one."""
    actor = require_actor(actor)
    await _ensure_not_last(store, actor, workspace_id)
    fields = {"isDeleted": True, "updatedAt": now_ms()}
    await store.batch_write([update_op(workspace_path(workspace_id), fields)])
    logger.info("Workspace trashed: {}", workspace_id)


async def restore_workspace(store: DocumentStore, actor: str | None, workspace_id: str) -> None:
    require_actor(actor)
    fields = {"isDeleted": False, "updatedAt": now_ms()}
    await store.batch_write([update_op(workspace_path(workspace_id), fields)])
    logger.info("Workspace restored: {}", workspace_id)


async def leave_workspace(store: DocumentStore, actor: str | None, workspace_id: str) -> None:
    """Remove the actor from a workspace's members.  Owners cannot leave."""
    actor = require_actor(actor)
    workspace = await get_workspace(store, workspace_id)
    if workspace.owner_id == actor:
        msg = "The owner cannot leave their own workspace"
        raise ValueError(msg)
    members = [m for m in workspace.member_ids if m != actor]
    fields = {"memberIds": members, "updatedAt": now_ms()}
    await store.batch_write([update_op(workspace_path(workspace_id), fields)])
    logger.info("Workspace left: {} (user={})", workspace_id, actor)


async def add_members(store: DocumentStore, actor: str | None, workspace_id: str, user_ids: list[str]) -> None:
    require_actor(actor)
    if not user_ids:
        return
    workspace = await get_workspace(store, workspace_id)
    members = list(workspace.member_ids)
    members.extend(u for u in dict.fromkeys(user_ids) if u not in members)
    fields = {"memberIds": members, "updatedAt": now_ms()}
    await store.batch_write([update_op(workspace_path(workspace_id), fields)])


async def reorder_workspaces(store: DocumentStore, actor: str | None, ordered_ids: list[str]) -> None:
    """Renumber the workspace list: ``order = index`` for every id, in one batch."""
    require_actor(actor)
    now = now_ms()
    ops = [update_op(workspace_path(ws_id), {"order": index, "updatedAt": now}) for index, ws_id in enumerate(ordered_ids)]
    await store.batch_write(ops)


# -- Delete --------------------------------------------------------------------


async def hard_delete_workspace(
    store: DocumentStore,
    actor: str | None,
    workspace_id: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Permanently delete a workspace with all its pages and blocks.

    Best-effort cascade: blocks of each page in chunks, then the pages in
    chunks, then the workspace record.  Each chunk is atomic on its own; a
    failed chunk is logged and the cascade carries on.  Pages whose blocks
    could not all be deleted are kept, the workspace record is kept when
    anything failed, and ``CascadeError`` reports the failures.
    """
    actor = require_actor(actor)
    await _ensure_not_last(store, actor, workspace_id)
    await _purge_workspace(store, workspace_id, chunk_size=chunk_size)


async def _purge_workspace(store: DocumentStore, workspace_id: str, *, chunk_size: int) -> None:
    path = workspace_path(workspace_id)
    await store.get(path)
    page_ids = [r["id"] for r in await store.list(pages_path(workspace_id))]

    failures: list[tuple[str, BaseException]] = []
    removable: list[str] = []
    for page_id in page_ids:
        page_failures = await purge_blocks(store, workspace_id, page_id, chunk_size=chunk_size)
        if page_failures:
            failures.extend(page_failures)
        else:
            removable.append(page_path(workspace_id, page_id))

    failures.extend(await delete_in_chunks(store, removable, chunk_size=chunk_size, label=f"pages of {workspace_id}"))
    if not failures:
        failures = await delete_in_chunks(store, [path], chunk_size=chunk_size, label=f"workspace {workspace_id}")
    if failures:
        raise CascadeError(path, failures)
    logger.info("Workspace hard-deleted: {} ({} pages)", workspace_id, len(page_ids))


async def deactivate_account(store: DocumentStore, actor: str | None, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
    """Delete every workspace the actor owns and leave all the others.

    Failures on individual workspaces are logged and skipped so the rest of
    the account is still cleaned up.  The next ``ensure_hub_and_home`` starts
    the actor from a fresh "Hub".
    """
    actor = require_actor(actor)
    owned = await store.list(WORKSPACES, [Where("ownerId", WhereOp.EQ, actor)])
    for record in owned:
        try:
            await _purge_workspace(store, record["id"], chunk_size=chunk_size)
        except FolioError as exc:
            logger.error("Deactivation: failed to delete workspace {}: {}", record["id"], exc)

    for workspace in await list_workspaces(store, actor, include_deleted=True):
        if workspace.owner_id == actor:
            continue
        try:
            await leave_workspace(store, actor, workspace.id)
        except FolioError as exc:
            logger.error("Deactivation: failed to leave workspace {}: {}", workspace.id, exc)
    logger.info("Account deactivated: {}", actor)


async def _ensure_not_last(store: DocumentStore, actor: str, workspace_id: str) -> None:
    """Raise ``LastWorkspaceError`` when *workspace_id* is the actor's last active owned workspace."""
    workspace = await get_workspace(store, workspace_id)
    if workspace.owner_id != actor or workspace.is_deleted:
        return
    others = [w for w in await list_workspaces(store, actor) if w.owner_id == actor and w.id != workspace_id]
    if not others:
        raise LastWorkspaceError(workspace_id)
