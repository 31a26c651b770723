"""Page tree builder and cycle guard.

``build_tree`` turns the flat page list of a workspace into sorted roots and
a children-by-parent index.  It runs on every live snapshot, so it stays
pure and allocates fresh containers per call.  It never filters: callers
drop soft-deleted pages first (``live_pages``) when they want the visible
tree, and pass everything when they need the full parent graph (the move
guard).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from folio.organizer.models.records import Page

UNTITLED_PAGE = "Untitled Page"


@dataclass(frozen=True)
class PageTree:
    """Sorted roots plus sorted children per parent id."""

    roots: list[Page]
    children_by_parent: dict[str, list[Page]]

    def children(self, page_id: str) -> list[Page]:
        return self.children_by_parent.get(page_id, [])

    def siblings(self, parent_id: str | None) -> list[Page]:
        """Pages sharing *parent_id* (``None`` = roots), in display order."""
        if parent_id is None:
            return self.roots
        return self.children(parent_id)


def sort_key(page: Page) -> tuple[float, str]:
    return (page.order or 0, page.title)


def live_pages(pages: Iterable[Page]) -> list[Page]:
    """Drop soft-deleted pages."""
    return [p for p in pages if not p.is_deleted]


def build_tree(pages: Iterable[Page]) -> PageTree:
    """Index *pages* by parent and sort every sibling group.

    Children whose parent is not in *pages* stay bucketed under the missing
    parent id and never show up in ``roots``.
    """
    roots: list[Page] = []
    children_by_parent: dict[str, list[Page]] = {}

    pages = list(pages)
    for page in pages:
        children_by_parent.setdefault(page.id, [])

    for page in pages:
        if page.parent_id is None:
            roots.append(page)
        else:
            children_by_parent.setdefault(page.parent_id, []).append(page)

    roots.sort(key=sort_key)
    for bucket in children_by_parent.values():
        bucket.sort(key=sort_key)
    return PageTree(roots=roots, children_by_parent=children_by_parent)


def descendants_of(page_id: str, children_by_parent: Mapping[str, Sequence[Page]]) -> set[str]:
    """All pages below *page_id*, excluding *page_id* itself.

    Terminates on cyclic input: each page is expanded at most once.
    """
    found: set[str] = set()
    stack = [page_id]
    expanded = {page_id}
    while stack:
        current = stack.pop()
        for child in children_by_parent.get(current, ()):
            if child.id != page_id:
                found.add(child.id)
            if child.id not in expanded:
                expanded.add(child.id)
                stack.append(child.id)
    return found


def is_legal_move(
    page_id: str,
    target_parent_id: str | None,
    children_by_parent: Mapping[str, Sequence[Page]],
) -> bool:
    """Whether *page_id* may be placed under *target_parent_id* (``None`` = root)."""
    if target_parent_id is None:
        return True
    if target_parent_id == page_id:
        return False
    return target_parent_id not in descendants_of(page_id, children_by_parent)


def move_candidates(page_id: str, tree: PageTree) -> list[tuple[str, str, int]]:
    """Flatten *tree* depth-first into ``(id, title, depth)`` move destinations.

    The page itself and its whole subtree are left out, so every entry is a
    legal new parent.
    """
    forbidden = descendants_of(page_id, tree.children_by_parent) | {page_id}
    items: list[tuple[str, str, int]] = []
    seen: set[str] = set()
    stack: list[tuple[Page, int]] = [(node, 0) for node in reversed(tree.roots)]
    while stack:
        node, depth = stack.pop()
        if node.id in forbidden or node.id in seen:
            continue
        seen.add(node.id)
        items.append((node.id, node.title or UNTITLED_PAGE, depth))
        stack.extend((child, depth + 1) for child in reversed(tree.children(node.id)))
    return items
