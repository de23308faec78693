"""
SQLAlchemy models for users, bugs and the bug history audit trail.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from ..workflow.enums import (
    BugPriority,
    BugSeverity,
    BugStatus,
    BugType,
    HistoryAction,
    Role,
)
from .base import Base


def _values(enum_cls) -> list:
    return [member.value for member in enum_cls]


user_role_enum = Enum(*_values(Role), name="user_role")
bug_status_enum = Enum(*_values(BugStatus), name="bug_status")
bug_priority_enum = Enum(*_values(BugPriority), name="bug_priority")
bug_severity_enum = Enum(*_values(BugSeverity), name="bug_severity")
bug_type_enum = Enum(*_values(BugType), name="bug_type")
history_action_enum = Enum(*_values(HistoryAction), name="bug_history_action")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; treat stored naive values as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserModel(Base):
    """Directory user. Authentication lives elsewhere."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    role = Column(user_role_enum, nullable=False, default=Role.VIEWER.value, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "email": self.email,
            "role": self.role,
        }


class BugModel(Base):
    """Bug row. ``version`` is bumped by SQLAlchemy on every UPDATE."""

    __tablename__ = "bugs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=False, default="")

    status = Column(bug_status_enum, nullable=False, default=BugStatus.OPEN.value, index=True)
    priority = Column(bug_priority_enum, nullable=False, default=BugPriority.MEDIUM.value)
    severity = Column(bug_severity_enum, nullable=False, default=BugSeverity.MINOR.value)
    type = Column(bug_type_enum, nullable=False, default=BugType.BUG.value)

    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Not a foreign key: an assignee missing from the directory is recorded as "None"
    qa_assignee_id = Column(Integer, nullable=True, index=True)
    is_blocking = Column(Boolean, nullable=False, default=False)
    blocked_by_bug_id = Column(Integer, ForeignKey("bugs.id"), nullable=True, index=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("ix_bugs_status_priority", "status", "priority"),)


class BugHistoryModel(Base):
    """Append-only audit trail entry for a bug."""

    __tablename__ = "bug_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_id = Column(
        Integer, ForeignKey("bugs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(history_action_enum, nullable=False, index=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (Index("ix_bug_history_bug_created", "bug_id", "created_at"),)
