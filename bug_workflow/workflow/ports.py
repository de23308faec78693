"""
Collaborators the workflow engine depends on.

The engine never owns persistence. The surrounding application supplies a
bug store, a user directory and a clock; in-memory versions live here for
tests and embedding, SQL versions live in ``bug_workflow.db``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from .schemas import Bug, UserSummary


class Clock(ABC):
    """Source of "now" for timestamps written by the workflow."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class BugStore(ABC):
    """Read/write access to bugs by id."""

    @abstractmethod
    def find_by_id(self, bug_id: int) -> Optional[Bug]:
        """Return a detached copy of the bug, or None if absent."""

    @abstractmethod
    def save(self, bug: Bug) -> Bug:
        """Persist the bug and return the stored state."""


class UserDirectory(ABC):
    """Lookup of users for display names and roles."""

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[UserSummary]:
        """Return the user, or None if absent."""


class InMemoryBugStore(BugStore):
    """Bugs kept in a dict keyed by id.

    Bugs refer to each other by id only, so cycles (A blocks B, B blocks A)
    are plain data.
    """

    def __init__(self, bugs: Optional[Iterable[Bug]] = None):
        self._bugs: Dict[int, Bug] = {}
        for bug in bugs or ():
            self._bugs[bug.id] = bug.model_copy()

    def add(self, bug: Bug) -> Bug:
        self._bugs[bug.id] = bug.model_copy()
        return bug.model_copy()

    def find_by_id(self, bug_id: int) -> Optional[Bug]:
        bug = self._bugs.get(bug_id)
        return bug.model_copy() if bug is not None else None

    def save(self, bug: Bug) -> Bug:
        stored = bug.model_copy(update={"version": bug.version + 1})
        self._bugs[bug.id] = stored
        return stored.model_copy()


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, users: Optional[Iterable[UserSummary]] = None):
        self._users: Dict[int, UserSummary] = {u.id: u for u in users or ()}

    def add(self, user: UserSummary) -> UserSummary:
        self._users[user.id] = user
        return user

    def find_by_id(self, user_id: int) -> Optional[UserSummary]:
        return self._users.get(user_id)
