"""Persisted record models: workspaces, pages and blocks.

Field names on the wire are camelCase (``parentId``, ``isDeleted``, ...);
that is the contract the UI and other collaborators read.  Python code uses
the snake_case attribute names.  Timestamps are unix milliseconds.

Storage layout::

    workspaces/{ws_id}
    workspaces/{ws_id}/pages/{page_id}
    workspaces/{ws_id}/pages/{page_id}/blocks/{block_id}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from folio.organizer.models.enums import BlockType


class Record(BaseModel):
    """Base for stored documents.  ``id`` is the last path segment, not a field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    created_at: int | None = None
    updated_at: int | None = None

    def to_fields(self) -> dict[str, Any]:
        """Dump to wire field names, without ``id``."""
        return self.model_dump(by_alias=True, exclude={"id"})


class Workspace(Record):
    name: str = ""
    owner_id: str
    member_ids: list[str] = Field(default_factory=list)
    is_deleted: bool = False
    order: float | None = 0


class Page(Record):
    title: str = ""
    parent_id: str | None = None
    order: float | None = 0
    is_deleted: bool = False


class Block(Record):
    type: BlockType = BlockType.TEXT
    order: float | None = 0
    data: dict[str, Any] = Field(default_factory=dict)


# -- Paths -------------------------------------------------------------------

WORKSPACES = "workspaces"


def workspace_path(workspace_id: str) -> str:
    return f"{WORKSPACES}/{workspace_id}"


def pages_path(workspace_id: str) -> str:
    return f"{WORKSPACES}/{workspace_id}/pages"


def page_path(workspace_id: str, page_id: str) -> str:
    return f"{pages_path(workspace_id)}/{page_id}"


def blocks_path(workspace_id: str, page_id: str) -> str:
    return f"{page_path(workspace_id, page_id)}/blocks"


def block_path(workspace_id: str, page_id: str, block_id: str) -> str:
    return f"{blocks_path(workspace_id, page_id)}/{block_id}"
