"""Tests for page operations on the in-memory store."""

from __future__ import annotations

import pytest

from folio.organizer.errors import (
    CascadeError,
    FolioError,
    IllegalMoveError,
    NotAuthenticatedError,
    NotFoundError,
    TransientStoreError,
)
from folio.organizer.managers import blocks as block_manager
from folio.organizer.managers import pages as manager
from folio.organizer.models.records import Page, blocks_path, page_path
from folio.organizer.store.base import WriteOp, set_op
from folio.organizer.store.memory import MemoryDocumentStore
from folio.organizer.tree import build_tree

ALICE = "alice"


async def _put_page(store: MemoryDocumentStore, ws: str, page_id: str, *, order: float, parent_id: str | None = None):
    page = Page(id=page_id, title=page_id, parent_id=parent_id, order=order)
    await store.batch_write([set_op(page_path(ws, page_id), page.to_fields())])


async def _put_blocks(store: MemoryDocumentStore, ws: str, page_id: str, count: int) -> None:
    ops = [set_op(f"{blocks_path(ws, page_id)}/b{i}", {"type": "text", "order": i, "data": {}}) for i in range(count)]
    for start in range(0, count, store.max_batch_size):
        await store.batch_write(ops[start : start + store.max_batch_size])


class RecordingStore(MemoryDocumentStore):
    """Memory store that remembers the size of every batch."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.batch_sizes: list[int] = []

    async def batch_write(self, ops: list[WriteOp]) -> None:
        self.batch_sizes.append(len(ops))
        await super().batch_write(ops)


class FlakyStore(RecordingStore):
    """Fails every batch that touches *poisoned*."""

    def __init__(self, poisoned: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.poisoned = poisoned

    async def batch_write(self, ops: list[WriteOp]) -> None:
        if any(op.path == self.poisoned for op in ops):
            msg = "connection reset"
            raise TransientStoreError(msg)
        await super().batch_write(ops)


# -- Create / rename -----------------------------------------------------------


async def test_create_page_appends_to_siblings(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    first = await manager.create_page(store, ALICE, ws, None, "First")
    child_a = await manager.create_page(store, ALICE, ws, first, "A")
    child_b = await manager.create_page(store, ALICE, ws, first, "B")

    tree = build_tree(await manager.list_pages(store, ws))
    assert [p.id for p in tree.roots] == [home, first]
    assert [p.id for p in tree.children(first)] == [child_a, child_b]

    a = await manager.get_page(store, ws, child_a)
    b = await manager.get_page(store, ws, child_b)
    assert b.order == a.order + 1
    assert a.is_deleted is False
    assert a.created_at is not None


async def test_first_child_gets_timestamp_order(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    child = await manager.create_page(store, ALICE, ws, home)
    page = await manager.get_page(store, ws, child)
    assert page.title == "Untitled"
    assert page.order > 1_600_000_000_000


async def test_create_page_requires_parent_and_workspace(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    with pytest.raises(NotFoundError):
        await manager.create_page(store, ALICE, ws, "missing-parent")
    with pytest.raises(NotFoundError):
        await manager.create_page(store, ALICE, "missing-ws")


async def test_rename_blank_becomes_untitled(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    await manager.rename_page(store, ALICE, ws, home, "   ")
    assert (await manager.get_page(store, ws, home)).title == "Untitled"
    await manager.rename_page(store, ALICE, ws, home, "Start")
    assert (await manager.get_page(store, ws, home)).title == "Start"


async def test_rename_missing_page(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    with pytest.raises(NotFoundError):
        await manager.rename_page(store, ALICE, ws, "nope", "x")


@pytest.mark.parametrize("actor", [None, ""])
async def test_writes_require_actor(store: MemoryDocumentStore, workspace, actor) -> None:
    ws, home = workspace
    with pytest.raises(NotAuthenticatedError):
        await manager.create_page(store, actor, ws)
    with pytest.raises(NotAuthenticatedError):
        await manager.move_page(store, actor, ws, home, None, [home])
    with pytest.raises(NotAuthenticatedError):
        await manager.hard_delete_page(store, actor, ws, home)


# -- Trash ---------------------------------------------------------------------


async def test_soft_delete_hides_and_restore_reveals(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    notes = await manager.create_page(store, ALICE, ws, None, "Notes")
    draft = await manager.create_page(store, ALICE, ws, notes, "Draft")

    await manager.soft_delete_page(store, ALICE, ws, notes)
    tree = build_tree(await manager.list_pages(store, ws))
    assert [p.id for p in tree.roots] == [home]
    # Children are not trashed with their parent.
    assert [p.id for p in tree.children_by_parent[notes]] == [draft]
    assert [p.id for p in await manager.list_pages(store, ws, include_deleted=True) if p.is_deleted] == [notes]

    await manager.restore_page(store, ALICE, ws, notes)
    tree = build_tree(await manager.list_pages(store, ws))
    assert [p.id for p in tree.roots] == [home, notes]


async def test_list_trashed_pages(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    page = await manager.create_page(store, ALICE, ws, None, "Old")
    await manager.soft_delete_page(store, ALICE, ws, page)
    trashed = await manager.list_trashed_pages(store, ALICE)
    assert [(w, p.id) for w, p in trashed] == [(ws, page)]
    assert await manager.list_trashed_pages(store, "bob") == []


# -- Move ----------------------------------------------------------------------


async def test_move_renumbers_sibling_group(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    for i, page_id in enumerate(["p1", "p2", "p3"]):
        await _put_page(store, ws, page_id, order=(i + 1) * 1000, parent_id="parent")
    await _put_page(store, ws, "parent", order=5)

    await manager.move_page(store, ALICE, ws, "p3", "parent", ["p1", "p3", "p2"])

    orders = {p.id: p.order for p in await manager.list_pages(store, ws)}
    assert (orders["p1"], orders["p3"], orders["p2"]) == (0, 1, 2)
    tree = build_tree(await manager.list_pages(store, ws))
    assert [p.id for p in tree.children("parent")] == ["p1", "p3", "p2"]


async def test_move_end_to_end(store: MemoryDocumentStore) -> None:
    ws = "ws"
    await store.batch_write([set_op(f"workspaces/{ws}", {"name": "W", "ownerId": ALICE, "memberIds": [ALICE]})])
    await _put_page(store, ws, "Home", order=0)
    await _put_page(store, ws, "Notes", order=1)
    await _put_page(store, ws, "Draft", order=0, parent_id="Notes")

    await manager.move_page(store, ALICE, ws, "Draft", None, ["Home", "Draft", "Notes"])

    tree = build_tree(await manager.list_pages(store, ws))
    assert [p.id for p in tree.roots] == ["Home", "Draft", "Notes"]
    assert tree.children("Notes") == []


async def test_move_into_descendant_is_rejected_before_writing() -> None:
    recording = RecordingStore()
    ws = "ws"
    await _put_page(recording, ws, "A", order=0)
    await _put_page(recording, ws, "B", order=0, parent_id="A")
    await _put_page(recording, ws, "C", order=0, parent_id="B")
    writes_before = len(recording.batch_sizes)

    with pytest.raises(IllegalMoveError):
        await manager.move_page(recording, ALICE, ws, "A", "C", ["C", "A"])
    with pytest.raises(IllegalMoveError):
        await manager.move_page(recording, ALICE, ws, "A", "A", ["A"])

    assert len(recording.batch_sizes) == writes_before
    assert (await manager.get_page(recording, ws, "A")).parent_id is None


async def test_move_guard_sees_trashed_pages(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    await _put_page(store, ws, "A", order=0)
    await _put_page(store, ws, "B", order=0, parent_id="A")
    await _put_page(store, ws, "C", order=0, parent_id="B")
    await manager.soft_delete_page(store, ALICE, ws, "B")

    with pytest.raises(IllegalMoveError):
        await manager.move_page(store, ALICE, ws, "A", "C", ["A"])


async def test_move_rejects_malformed_sibling_order(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    other = await manager.create_page(store, ALICE, ws)
    with pytest.raises(ValueError, match="exactly once"):
        await manager.move_page(store, ALICE, ws, home, None, [other])
    with pytest.raises(ValueError, match="duplicate"):
        await manager.move_page(store, ALICE, ws, home, None, [home, other, other])


async def test_move_unknown_pages(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    with pytest.raises(NotFoundError):
        await manager.move_page(store, ALICE, ws, "ghost", None, ["ghost"])
    with pytest.raises(NotFoundError):
        await manager.move_page(store, ALICE, ws, home, "ghost", [home])


# -- Read helpers --------------------------------------------------------------


async def test_first_root_and_home(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    assert await manager.get_first_root_page_id(store, ws) == home
    assert await manager.ensure_home_page(store, ALICE, ws) == home

    await manager.soft_delete_page(store, ALICE, ws, home)
    assert await manager.get_first_root_page_id(store, ws) is None
    created = await manager.ensure_home_page(store, ALICE, ws)
    assert created != home
    assert (await manager.get_page(store, ws, created)).title == "Home"


async def test_move_candidates_exclude_subtree(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    child = await manager.create_page(store, ALICE, ws, home, "Child")
    other = await manager.create_page(store, ALICE, ws, None, "Other")

    candidates = await manager.get_move_candidates(store, ws, home)
    assert candidates == [(other, "Other", 0)]
    candidates = await manager.get_move_candidates(store, ws, other)
    assert candidates == [(home, "Home", 0), (child, "Child", 1)]


# -- Hard delete ---------------------------------------------------------------


async def test_hard_delete_cascades_blocks_in_chunks() -> None:
    recording = RecordingStore()
    ws = "ws"
    await _put_page(recording, ws, "p", order=0)
    await _put_page(recording, ws, "child", order=0, parent_id="p")
    await _put_blocks(recording, ws, "p", 1000)
    recording.batch_sizes.clear()

    await manager.hard_delete_page(recording, ALICE, ws, "p")

    assert recording.batch_sizes == [450, 450, 100, 1]
    assert await recording.list(blocks_path(ws, "p")) == []
    assert [p.id for p in await manager.list_pages(recording, ws)] == ["child"]
    # The child keeps pointing at the removed page.
    assert (await manager.get_page(recording, ws, "child")).parent_id == "p"


async def test_hard_delete_chunk_size_capped_by_store_limit() -> None:
    recording = RecordingStore(max_batch_size=100)
    ws = "ws"
    await _put_page(recording, ws, "p", order=0)
    await _put_blocks(recording, ws, "p", 250)
    recording.batch_sizes.clear()

    await manager.hard_delete_page(recording, ALICE, ws, "p", chunk_size=450)
    assert recording.batch_sizes == [100, 100, 50, 1]


async def test_hard_delete_page_with_blocks_from_manager(store: MemoryDocumentStore, workspace) -> None:
    ws, home = workspace
    for _ in range(3):
        await block_manager.add_block(store, ALICE, ws, home)

    await manager.hard_delete_page(store, ALICE, ws, home)
    assert await block_manager.list_blocks(store, ws, home) == []
    with pytest.raises(NotFoundError):
        await manager.get_page(store, ws, home)


async def test_hard_delete_keeps_page_when_a_chunk_fails() -> None:
    ws = "ws"
    flaky = FlakyStore(poisoned=f"{blocks_path(ws, 'p')}/b3")
    await _put_page(flaky, ws, "p", order=0)
    await _put_blocks(flaky, ws, "p", 10)

    with pytest.raises(CascadeError) as exc_info:
        await manager.hard_delete_page(flaky, ALICE, ws, "p", chunk_size=4)

    assert len(exc_info.value.failures) == 1
    assert isinstance(exc_info.value.failures[0][1], TransientStoreError)
    # Chunk 0 (b0..b3) failed; chunks 1 and 2 still ran.
    remaining = sorted(b["id"] for b in await flaky.list(blocks_path(ws, "p")))
    assert remaining == ["b0", "b1", "b2", "b3"]
    assert (await flaky.get(page_path(ws, "p")))["id"] == "p"
    assert isinstance(exc_info.value, FolioError)


async def test_hard_delete_missing_page(store: MemoryDocumentStore, workspace) -> None:
    ws, _ = workspace
    with pytest.raises(NotFoundError):
        await manager.hard_delete_page(store, ALICE, ws, "ghost")
