"""
Bug Workflow Service

Role-gated status workflow, QA assignment, blocking and audit trail for bugs.
"""

import importlib.metadata

__version__ = importlib.metadata.version("bug-workflow")

from .workflow import (
    Actor,
    Bug,
    BugStatus,
    ForbiddenError,
    HistoryAction,
    HistoryEntry,
    NotFoundError,
    Role,
    WorkflowEngine,
    WorkflowError,
    allowed_targets,
    can_transition,
)

__all__ = [
    "Actor",
    "Bug",
    "BugStatus",
    "ForbiddenError",
    "HistoryAction",
    "HistoryEntry",
    "NotFoundError",
    "Role",
    "WorkflowEngine",
    "WorkflowError",
    "allowed_targets",
    "can_transition",
]
