"""
Bug workflow enums.

Wire values are lowercase and shared by the REST layer, the database columns
and the audit trail (``old_value``/``new_value`` snapshots).
"""

from enum import Enum


class BugStatus(str, Enum):
    """Workflow states a bug can be in. ``OPEN`` is the only initial state."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CODE_REVIEW = "code_review"
    QA_TESTING = "qa_testing"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"
    REJECTED = "rejected"


class Role(str, Enum):
    """Role of the acting user, as supplied by the auth layer."""

    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    DEVELOPER = "developer"
    QA = "qa"
    TESTER = "tester"
    CLIENT = "client"
    VIEWER = "viewer"


class HistoryAction(str, Enum):
    """Kinds of audit trail entries."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    PRIORITY_CHANGED = "priority_changed"
    SEVERITY_CHANGED = "severity_changed"
    COMMENTED = "commented"
    ATTACHMENT_ADDED = "attachment_added"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"
    QA_ASSIGNED = "qa_assigned"
    CODE_REVIEW_REQUESTED = "code_review_requested"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"


# Carried on the bug but never interpreted by the workflow.


class BugPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BugSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"
    BLOCKER = "blocker"


class BugType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    IMPROVEMENT = "improvement"
    TASK = "task"
