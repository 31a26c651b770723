"""Sort keys for sibling lists.

Siblings are sorted by a numeric ``order`` key.  ``compute_order`` places a
new item between two neighbours without renumbering the rest of the group:
it bisects the gap when there is room and otherwise accepts a tie with the
previous neighbour (ties sort by title).  Full renumbering only happens on
drag-and-drop moves, see ``managers.pages.move_page``.
"""

from __future__ import annotations

import math
import time

_last_ms = 0


def now_ms() -> int:
    """Current unix time in milliseconds, strictly increasing within the process."""
    global _last_ms
    ms = time.time_ns() // 1_000_000
    if ms <= _last_ms:
        ms = _last_ms + 1
    _last_ms = ms
    return ms


def compute_order(prev: float | None = None, next_: float | None = None) -> float:
    """Return an order key that sorts after *prev* and before *next_*.

    - no neighbours: a fresh timestamp, so new standalone lists sort after
      existing data and among themselves in creation order
    - only *next_*: ``next_ - 1``
    - only *prev*: ``prev + 1``
    - both: the floored midpoint when ``prev + 1 < next_``, else ``prev + 1``
    """
    if prev is None and next_ is None:
        return now_ms()
    if prev is None:
        return next_ - 1  # type: ignore[operator]
    if next_ is None:
        return prev + 1
    if prev + 1 < next_:
        return math.floor((prev + next_) / 2)
    return prev + 1
