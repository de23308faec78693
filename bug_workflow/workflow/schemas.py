"""
Bug workflow records.

Plain pydantic models that flow between the engine and its collaborators.
Stores hand out copies of these, so mutating a loaded ``Bug`` has no effect
until it is passed back to ``BugStore.save``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, constr

from .enums import BugPriority, BugSeverity, BugStatus, BugType, HistoryAction, Role


class Bug(BaseModel):
    """The subset of a bug the workflow reads and writes.

    Invariant: ``is_blocking`` is true iff ``blocked_by_bug_id`` is set.
    """

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int
    title: str = ""
    description: str = ""
    status: BugStatus = BugStatus.OPEN
    priority: BugPriority = BugPriority.MEDIUM
    severity: BugSeverity = BugSeverity.MINOR
    type: BugType = BugType.BUG

    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    qa_assignee_id: Optional[int] = None
    is_blocking: bool = False
    blocked_by_bug_id: Optional[int] = None

    # Optimistic concurrency token, bumped by the store on every save
    version: int = 1

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HistoryEntry(BaseModel):
    """One immutable audit trail record."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    bug_id: int
    user_id: int
    action: HistoryAction
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    @property
    def summary(self) -> str:
        """Human-readable sentence describing the entry."""
        return describe_action(self.action, self.old_value, self.new_value)

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["summary"] = self.summary
        return data


def describe_action(
    action: HistoryAction,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> str:
    """Render a history action as a sentence for timelines."""
    templates = {
        HistoryAction.CREATED: "Bug was created",
        HistoryAction.STATUS_CHANGED: f"Status changed from {old_value} to {new_value}",
        HistoryAction.ASSIGNED: f"Bug assigned to {new_value}",
        HistoryAction.PRIORITY_CHANGED: f"Priority changed from {old_value} to {new_value}",
        HistoryAction.SEVERITY_CHANGED: f"Severity changed from {old_value} to {new_value}",
        HistoryAction.COMMENTED: "Comment added",
        HistoryAction.ATTACHMENT_ADDED: "Attachment added",
        HistoryAction.RESOLVED: "Bug marked as resolved",
        HistoryAction.CLOSED: "Bug closed",
        HistoryAction.REOPENED: "Bug reopened",
        HistoryAction.QA_ASSIGNED: f"QA assigned to {new_value}",
        HistoryAction.CODE_REVIEW_REQUESTED: "Code review requested",
        HistoryAction.BLOCKED: f"Bug blocked by {new_value}",
        HistoryAction.UNBLOCKED: "Bug unblocked",
    }
    return templates[HistoryAction(action)]


class Actor(BaseModel):
    """The user performing a workflow operation."""

    model_config = ConfigDict(extra="forbid")

    id: int
    role: Role


class UserSummary(BaseModel):
    """What the user directory tells the workflow about a user."""

    id: int
    display_name: str
    role: Optional[Role] = None


# Request bodies for the REST layer


class BugCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: constr(min_length=1, max_length=512)
    description: constr(max_length=16000) = ""
    priority: BugPriority = BugPriority.MEDIUM
    severity: BugSeverity = BugSeverity.MINOR
    type: BugType = BugType.BUG


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: constr(min_length=1, max_length=128)
    last_name: constr(min_length=1, max_length=128)
    email: constr(min_length=3, max_length=320)
    role: Role = Role.VIEWER


class StatusTransitionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: BugStatus
    notes: Optional[constr(max_length=4000)] = None


class QAAssignRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    qa_user_id: int = Field(..., description="User to make QA assignee")


class BlockRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    blocked_by_bug_id: int
    reason: Optional[constr(max_length=4000)] = None


class UnblockRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: Optional[constr(max_length=4000)] = None
