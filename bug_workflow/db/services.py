"""
Database services for the bug workflow service.

``BugService`` and ``UserService`` cover the small amount of CRUD needed to
get bugs and users into the tables; every status-related change goes through
the ``WorkflowEngine`` built by ``build_workflow_engine``.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..workflow.audit import AuditTrailRecorder
from ..workflow.engine import WorkflowEngine
from ..workflow.enums import BugStatus, HistoryAction
from ..workflow.ports import Clock, SystemClock
from ..workflow.schemas import Bug, BugCreate, UserCreate
from .base import atomic
from .models import BugModel, UserModel
from .stores import SqlAuditTrail, SqlBugStore, SqlUserDirectory, bug_from_model


def build_workflow_engine(db: Session, clock: Optional[Clock] = None) -> WorkflowEngine:
    """Wire a WorkflowEngine onto a database session.

    Each engine operation runs inside ``atomic(db)``.
    """
    clock = clock or SystemClock()
    return WorkflowEngine(
        bugs=SqlBugStore(db),
        users=SqlUserDirectory(db),
        audit=SqlAuditTrail(db, clock=clock),
        clock=clock,
        transaction=lambda: atomic(db),
    )


class UserService:
    """Service for managing directory users."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user: UserCreate) -> UserModel:
        db_user = UserModel(
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role.value,
        )

        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return db_user

    def get(self, user_id: int) -> Optional[UserModel]:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.email == email).first()


class BugService:
    """Service for creating and fetching bugs."""

    def __init__(self, db: Session, audit: Optional[AuditTrailRecorder] = None):
        self.db = db
        self.audit = audit or SqlAuditTrail(db)

    def create(self, bug: BugCreate, reporter_id: int) -> Bug:
        """Create a bug in OPEN and record who filed it."""
        with atomic(self.db):
            db_bug = BugModel(
                title=bug.title,
                description=bug.description,
                status=BugStatus.OPEN.value,
                priority=bug.priority.value,
                severity=bug.severity.value,
                type=bug.type.value,
                is_blocking=False,
            )
            self.db.add(db_bug)
            self.db.flush()

            self.audit.record(
                bug_id=db_bug.id,
                user_id=reporter_id,
                action=HistoryAction.CREATED,
                new_value=BugStatus.OPEN.value,
                description=f"Bug created: {bug.title}",
            )

        self.db.refresh(db_bug)
        return bug_from_model(db_bug)

    def get(self, bug_id: int) -> Optional[Bug]:
        db_bug = self.db.get(BugModel, bug_id)
        return bug_from_model(db_bug) if db_bug is not None else None
