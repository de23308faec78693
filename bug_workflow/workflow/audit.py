"""
Audit trail recorder.

Appends immutable history entries and reads them back per bug, newest first.
No business logic lives here; it is the seam that lets the engine's audit
behavior be tested apart from the transition policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .enums import HistoryAction
from .ports import Clock, SystemClock
from .schemas import HistoryEntry


class AuditTrailRecorder(ABC):
    """Append-only store of bug history entries."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    @abstractmethod
    def record(
        self,
        bug_id: int,
        user_id: int,
        action: HistoryAction,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        description: Optional[str] = None,
    ) -> HistoryEntry:
        """Append an entry stamped with ``clock.now()``.

        Args:
            bug_id: Bug the entry belongs to
            user_id: Acting user
            action: What happened
            old_value: Snapshot of the value before the change
            new_value: Snapshot of the value after the change
            description: Free-text note

        Returns:
            The stored HistoryEntry
        """

    @abstractmethod
    def find_by_bug(self, bug_id: int) -> List[HistoryEntry]:
        """Return all entries for a bug, newest first."""


class InMemoryAuditTrail(AuditTrailRecorder):
    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._entries: List[HistoryEntry] = []

    def record(
        self,
        bug_id: int,
        user_id: int,
        action: HistoryAction,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        description: Optional[str] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=len(self._entries) + 1,
            bug_id=bug_id,
            user_id=user_id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            description=description,
            created_at=self.clock.now(),
        )
        self._entries.append(entry)
        return entry

    def find_by_bug(self, bug_id: int) -> List[HistoryEntry]:
        entries = [e for e in self._entries if e.bug_id == bug_id]
        return sorted(entries, key=lambda e: (e.created_at, e.id), reverse=True)

    def __len__(self) -> int:
        return len(self._entries)
