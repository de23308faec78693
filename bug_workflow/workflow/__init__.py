"""
Bug status workflow.

Transition policy, workflow engine and audit trail, independent of how bugs
are stored or exposed.
"""

from .audit import AuditTrailRecorder, InMemoryAuditTrail
from .engine import WorkflowEngine
from .enums import (
    BugPriority,
    BugSeverity,
    BugStatus,
    BugType,
    HistoryAction,
    Role,
)
from .errors import ForbiddenError, NotFoundError, WorkflowError
from .policy import allowed_targets, can_transition
from .ports import (
    BugStore,
    Clock,
    InMemoryBugStore,
    InMemoryUserDirectory,
    SystemClock,
    UserDirectory,
)
from .schemas import Actor, Bug, HistoryEntry, UserSummary

__all__ = [
    "Actor",
    "AuditTrailRecorder",
    "Bug",
    "BugPriority",
    "BugSeverity",
    "BugStatus",
    "BugStore",
    "BugType",
    "Clock",
    "ForbiddenError",
    "HistoryAction",
    "HistoryEntry",
    "InMemoryAuditTrail",
    "InMemoryBugStore",
    "InMemoryUserDirectory",
    "NotFoundError",
    "Role",
    "SystemClock",
    "UserDirectory",
    "UserSummary",
    "WorkflowEngine",
    "WorkflowError",
    "allowed_targets",
    "can_transition",
]
