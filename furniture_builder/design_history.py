"""
design_history.py

Bounded undo/redo history built from canonical JSON snapshots of a project's
persisted data. Consecutive identical snapshots are coalesced into one entry.
"""

import logging
from typing import List, Optional

from .cad_common import HISTORY_LIMIT

logger = logging.getLogger(__name__)


class UndoHistory:
    """
    Keeps past and future snapshots around the current ("present") one.
    Snapshots are opaque strings; equality is plain string equality, so the
    caller must produce them canonically (see design_snapshot.canonical_json).
    """
    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        self.limit: int = limit
        self._past: List[str] = []
        self._future: List[str] = []
        self._present: Optional[str] = None

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def past_count(self) -> int:
        return len(self._past)

    @property
    def future_count(self) -> int:
        return len(self._future)

    @property
    def present(self) -> Optional[str]:
        return self._present

    def record(self, snapshot: str) -> bool:
        """
        Records a new present snapshot. Returns False (and records nothing)
        when it is identical to the current one. A new entry discards the redo stack.
        """
        if self._present is None:
            self._present = snapshot
            return False
        if snapshot == self._present:
            return False
        self._past.append(self._present)
        if len(self._past) > self.limit:
            # Evict oldest
            del self._past[0:len(self._past) - self.limit]
        self._present = snapshot
        self._future.clear()
        return True

    def undo(self) -> Optional[str]:
        """Steps back one entry and returns the snapshot to restore, or None."""
        if not self._past:
            logger.debug("Nothing to undo.")
            return None
        self._future.append(self._present)
        self._present = self._past.pop()
        return self._present

    def redo(self) -> Optional[str]:
        """Steps forward one entry and returns the snapshot to restore, or None."""
        if not self._future:
            logger.debug("Nothing to redo.")
            return None
        self._past.append(self._present)
        self._present = self._future.pop()
        return self._present

    def clear(self, present: Optional[str] = None) -> None:
        """Drops all past and future entries, keeping present as the baseline."""
        self._past.clear()
        self._future.clear()
        self._present = present
        logger.debug("Undo history cleared.")
