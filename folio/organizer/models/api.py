"""API request / response schemas for the HTTP adapter.

Request bodies are snake_case like the rest of the API; record responses
reuse the record models and serialize with their camelCase wire names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from folio.organizer.models.enums import BlockType
from folio.organizer.models.records import Page, Workspace

if TYPE_CHECKING:
    from folio.organizer.tree import PageTree

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    """Input for creating a new workspace (a "Home" page is created with it)."""

    name: str = "New Workspace"


class WorkspaceCreated(BaseModel):
    workspace_id: str
    page_id: str


class WorkspaceRename(BaseModel):
    name: str = ""


class WorkspaceReorder(BaseModel):
    ordered_ids: list[str] = Field(description="Every workspace id in the desired display order.")


class MembersAdd(BaseModel):
    user_ids: list[str]


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


class PageCreate(BaseModel):
    parent_id: str | None = None
    title: str = "Untitled"


class PageCreated(BaseModel):
    page_id: str


class PageRename(BaseModel):
    title: str = ""


class PageMove(BaseModel):
    """Reparent and/or reorder a page.

    ``final_sibling_order`` is the complete order of the destination sibling
    group after the move, the moved page included.
    """

    new_parent_id: str | None = None
    final_sibling_order: list[str]


class TreeResponse(BaseModel):
    """Render-ready tree: sorted roots plus sorted children per parent id."""

    roots: list[Page]
    children_by_parent: dict[str, list[Page]]

    @classmethod
    def from_tree(cls, tree: PageTree) -> TreeResponse:
        return cls(roots=tree.roots, children_by_parent=tree.children_by_parent)


class MoveCandidate(BaseModel):
    page_id: str
    title: str
    depth: int


class FirstRootResponse(BaseModel):
    page_id: str | None = None


# ---------------------------------------------------------------------------
# Block
# ---------------------------------------------------------------------------


class BlockAdd(BaseModel):
    type: BlockType = BlockType.TEXT
    data: dict[str, Any] | None = None


class BlockAdded(BaseModel):
    block_id: str


class BlockUpdate(BaseModel):
    data: dict[str, Any]


# ---------------------------------------------------------------------------
# Trash
# ---------------------------------------------------------------------------


class TrashedPage(BaseModel):
    workspace_id: str
    page: Page


class TrashResponse(BaseModel):
    """Everything the acting user can restore or purge."""

    workspaces: list[Workspace]
    pages: list[TrashedPage]
