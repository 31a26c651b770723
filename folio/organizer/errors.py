"""Domain exceptions raised by the store and the mutation engine.

Managers raise these, never HTTP exceptions -- the routers translate them
into status codes.  Each error also subclasses the closest builtin so callers
that only care about ``LookupError`` / ``ValueError`` keep working.
"""

from __future__ import annotations


class FolioError(Exception):
    """Base class for all organizer errors."""


class NotAuthenticatedError(FolioError, PermissionError):
    """Raised when an operation requires an acting user and none was given."""

    def __init__(self, message: str = "Not signed in") -> None:
        super().__init__(message)


class NotFoundError(FolioError, LookupError):
    """Raised when a record does not exist (or vanished before the write)."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Record not found: {path}")


class IllegalMoveError(FolioError, ValueError):
    """Raised when a page would be moved under itself or one of its descendants."""

    def __init__(self, page_id: str, target_parent_id: str | None) -> None:
        self.page_id = page_id
        self.target_parent_id = target_parent_id
        super().__init__(f"Cannot move page '{page_id}' under '{target_parent_id}'")


class BatchTooLargeError(FolioError, ValueError):
    """Raised by a store when a batch exceeds its per-batch write limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} writes exceeds the limit of {limit}")


class TransientStoreError(FolioError, ConnectionError):
    """Raised when the backing store fails (network, database, broker)."""


class PreconditionError(FolioError):
    """Raised when a query cannot be served as asked (e.g. a missing index)."""


class ConflictError(FolioError):
    """Raised when an optimistic-concurrency check fails."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Record changed concurrently: {path}")


class LastWorkspaceError(FolioError):
    """Raised when an owner would be left without any active workspace."""

    def __init__(self, workspace_id: str) -> None:
        self.workspace_id = workspace_id
        super().__init__(f"Workspace '{workspace_id}' is your last active workspace")


class CascadeError(FolioError):
    """Raised after a best-effort cascade finished with some chunks failing.

    ``failures`` holds ``(description, exception)`` pairs, in the order the
    chunks were attempted.  Chunks that succeeded stay applied.
    """

    def __init__(self, target: str, failures: list[tuple[str, BaseException]]) -> None:
        self.target = target
        self.failures = failures
        super().__init__(f"Cascade delete of {target} finished with {len(failures)} failed chunk(s)")
