"""Shared enumerations used across the organizer."""

from __future__ import annotations

from enum import StrEnum

# -- Blocks ------------------------------------------------------------------


class BlockType(StrEnum):
    """Content block kinds a page can hold."""

    TEXT = "text"
    IMAGE = "image"
    BOARD = "board"
    TABLE = "table"
    CHART = "chart"
    GANTT = "gantt"
    EMBED = "embed"


# -- Store -------------------------------------------------------------------


class WriteKind(StrEnum):
    """Kind of a single write inside an atomic batch."""

    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


class WhereOp(StrEnum):
    """Predicate operators supported by document-store queries."""

    EQ = "=="
    ARRAY_CONTAINS = "array-contains"


# -- Backends ----------------------------------------------------------------


class StoreBackend(StrEnum):
    MEMORY = "memory"
    SQL = "sql"
