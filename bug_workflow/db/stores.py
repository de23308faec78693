"""
SQL implementations of the workflow collaborators.

Stores only flush; committing is the caller's job (see ``atomic``), so a bug
update and its history entry land in the same transaction.
"""

from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..workflow.audit import AuditTrailRecorder
from ..workflow.enums import HistoryAction
from ..workflow.ports import BugStore, Clock, UserDirectory
from ..workflow.schemas import Bug, HistoryEntry, UserSummary
from .models import BugHistoryModel, BugModel, UserModel, as_utc

# Bug fields the workflow is allowed to write back
_WRITABLE_FIELDS = (
    "status",
    "resolved_at",
    "closed_at",
    "qa_assignee_id",
    "is_blocking",
    "blocked_by_bug_id",
)


def bug_from_model(model: BugModel) -> Bug:
    return Bug(
        id=model.id,
        title=model.title,
        description=model.description or "",
        status=model.status,
        priority=model.priority,
        severity=model.severity,
        type=model.type,
        resolved_at=as_utc(model.resolved_at),
        closed_at=as_utc(model.closed_at),
        qa_assignee_id=model.qa_assignee_id,
        is_blocking=bool(model.is_blocking),
        blocked_by_bug_id=model.blocked_by_bug_id,
        version=model.version,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def entry_from_model(model: BugHistoryModel) -> HistoryEntry:
    return HistoryEntry(
        id=model.id,
        bug_id=model.bug_id,
        user_id=model.user_id,
        action=model.action,
        old_value=model.old_value,
        new_value=model.new_value,
        description=model.description,
        created_at=as_utc(model.created_at),
    )


class SqlBugStore(BugStore):
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, bug_id: int) -> Optional[Bug]:
        model = self.db.get(BugModel, bug_id)
        return bug_from_model(model) if model is not None else None

    def save(self, bug: Bug) -> Bug:
        """Write workflow fields back to the row.

        Raises:
            StaleDataError: The row changed since ``bug`` was loaded
        """
        model = self.db.get(BugModel, bug.id)
        if model is None:
            raise StaleDataError(f"Bug #{bug.id} no longer exists")
        if model.version != bug.version:
            raise StaleDataError(
                f"Bug #{bug.id} was modified concurrently "
                f"(expected version {bug.version}, found {model.version})"
            )

        for field in _WRITABLE_FIELDS:
            value = getattr(bug, field)
            setattr(model, field, value.value if field == "status" else value)

        # The UPDATE carries "WHERE version = ?", catching writers in other sessions
        self.db.flush()
        self.db.refresh(model)
        return bug_from_model(model)


class SqlUserDirectory(UserDirectory):
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[UserSummary]:
        model = self.db.get(UserModel, user_id)
        if model is None:
            return None
        return UserSummary(id=model.id, display_name=model.display_name, role=model.role)


class SqlAuditTrail(AuditTrailRecorder):
    """Audit trail backed by the ``bug_history`` table.

    Usage:
        audit = SqlAuditTrail(db_session)
        audit.record(bug.id, user.id, HistoryAction.COMMENTED, description="LGTM")
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.db = db

    def record(
        self,
        bug_id: int,
        user_id: int,
        action: HistoryAction,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        description: Optional[str] = None,
    ) -> HistoryEntry:
        entry = BugHistoryModel(
            bug_id=bug_id,
            user_id=user_id,
            action=HistoryAction(action).value,
            old_value=old_value,
            new_value=new_value,
            description=description,
            created_at=self.clock.now(),
        )

        self.db.add(entry)
        self.db.flush()
        return entry_from_model(entry)

    def find_by_bug(self, bug_id: int) -> List[HistoryEntry]:
        rows = (
            self.db.query(BugHistoryModel)
            .filter(BugHistoryModel.bug_id == bug_id)
            .order_by(desc(BugHistoryModel.created_at), desc(BugHistoryModel.id))
            .all()
        )
        return [entry_from_model(row) for row in rows]
