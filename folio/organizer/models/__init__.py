"""Data models for the organizer."""

from folio.organizer.models.api import (
    BlockAdd,
    BlockAdded,
    BlockUpdate,
    FirstRootResponse,
    MembersAdd,
    MoveCandidate,
    PageCreate,
    PageCreated,
    PageMove,
    PageRename,
    TrashedPage,
    TrashResponse,
    TreeResponse,
    WorkspaceCreate,
    WorkspaceCreated,
    WorkspaceRename,
    WorkspaceReorder,
)
from folio.organizer.models.enums import BlockType, StoreBackend, WhereOp, WriteKind
from folio.organizer.models.records import Block, Page, Workspace

__all__ = [
    # Records
    "Block",
    # API schemas
    "BlockAdd",
    "BlockAdded",
    # Enums
    "BlockType",
    "BlockUpdate",
    "FirstRootResponse",
    "MembersAdd",
    "MoveCandidate",
    "Page",
    "PageCreate",
    "PageCreated",
    "PageMove",
    "PageRename",
    "StoreBackend",
    "TrashResponse",
    "TrashedPage",
    "TreeResponse",
    "WhereOp",
    "Workspace",
    "WorkspaceCreate",
    "WorkspaceCreated",
    "WorkspaceRename",
    "WorkspaceReorder",
    "WriteKind",
]
