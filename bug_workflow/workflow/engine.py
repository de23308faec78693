"""
Bug Workflow Engine.

Executes one workflow operation against a single bug:

    load bug -> authorize -> mutate -> persist -> audit -> return

Authorization happens before any mutation, so a NotFoundError or
ForbiddenError leaves the bug and the audit trail untouched. Collaborator
failures (store errors, concurrency conflicts) propagate as-is.

The engine holds no state between calls. Callers that need the bug update
and its history entry committed together pass a ``transaction`` factory
(see ``bug_workflow.db.atomic``).
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import Callable, ContextManager, FrozenSet, List, Optional

from .audit import AuditTrailRecorder
from .enums import BugStatus, HistoryAction, Role
from .errors import ForbiddenError, NotFoundError
from .policy import allowed_targets, can_transition
from .ports import BugStore, Clock, SystemClock, UserDirectory
from .schemas import Actor, Bug, HistoryEntry

QA_ASSIGNER_ROLES: FrozenSet[Role] = frozenset(
    {Role.ADMIN, Role.PROJECT_MANAGER, Role.DEVELOPER}
)

BLOCKER_ROLES: FrozenSet[Role] = frozenset(
    {Role.ADMIN, Role.PROJECT_MANAGER, Role.DEVELOPER, Role.QA, Role.TESTER}
)

NO_VALUE = "None"


def _bug_ref(bug_id: Optional[int]) -> str:
    return f"Bug #{bug_id}" if bug_id is not None else NO_VALUE


class WorkflowEngine:
    """Role-gated status workflow for bugs.

    Usage:
        engine = WorkflowEngine(bugs, users, audit)
        bug = engine.transition_status(7, BugStatus.IN_PROGRESS, Actor(id=3, role=Role.DEVELOPER))
    """

    def __init__(
        self,
        bugs: BugStore,
        users: UserDirectory,
        audit: AuditTrailRecorder,
        clock: Optional[Clock] = None,
        transaction: Optional[Callable[[], ContextManager]] = None,
    ):
        self.bugs = bugs
        self.users = users
        self.audit = audit
        self.clock = clock or SystemClock()
        self._transaction = transaction or nullcontext

    def _load(self, bug_id: int) -> Bug:
        bug = self.bugs.find_by_id(bug_id)
        if bug is None:
            raise NotFoundError(bug_id)
        return bug

    def _display_name(self, user_id: Optional[int]) -> str:
        if user_id is None:
            return NO_VALUE
        user = self.users.find_by_id(user_id)
        return user.display_name if user is not None else NO_VALUE

    def transition_status(
        self,
        bug_id: int,
        target_status: BugStatus,
        actor: Actor,
        notes: Optional[str] = None,
    ) -> Bug:
        """Move a bug to ``target_status`` if the actor's role allows it.

        RESOLVED stamps ``resolved_at`` and CLOSED stamps ``closed_at``.
        Neither is cleared when the bug later leaves that status.

        Raises:
            NotFoundError: The bug does not exist
            ForbiddenError: The policy does not allow the transition
        """
        target_status = BugStatus(target_status)

        with self._transaction():
            bug = self._load(bug_id)
            old_status = bug.status

            if not can_transition(actor.role, old_status, target_status):
                raise ForbiddenError(
                    code="TRANSITION_FORBIDDEN",
                    message=f"Cannot transition from {old_status.value} "
                    f"to {target_status.value}",
                )

            bug.status = target_status
            if target_status is BugStatus.RESOLVED:
                bug.resolved_at = self.clock.now()
            elif target_status is BugStatus.CLOSED:
                bug.closed_at = self.clock.now()

            bug = self.bugs.save(bug)

            self.audit.record(
                bug_id=bug.id,
                user_id=actor.id,
                action=HistoryAction.STATUS_CHANGED,
                old_value=old_status.value,
                new_value=target_status.value,
                description=notes
                or f"Status changed from {old_status.value} to {target_status.value}",
            )

        return bug

    def assign_qa(self, bug_id: int, qa_user_id: int, actor: Actor) -> Bug:
        """Replace the bug's QA assignee. Status is left alone.

        Raises:
            NotFoundError: The bug does not exist
            ForbiddenError: The actor is not an admin, PM or developer
        """
        with self._transaction():
            bug = self._load(bug_id)

            if actor.role not in QA_ASSIGNER_ROLES:
                raise ForbiddenError(
                    code="QA_ASSIGNMENT_FORBIDDEN",
                    message="Not authorized to assign QA",
                )

            old_name = self._display_name(bug.qa_assignee_id)
            bug.qa_assignee_id = qa_user_id
            bug = self.bugs.save(bug)
            new_name = self._display_name(qa_user_id)

            self.audit.record(
                bug_id=bug.id,
                user_id=actor.id,
                action=HistoryAction.QA_ASSIGNED,
                old_value=old_name,
                new_value=new_name,
                description=f"QA assigned to {new_name}",
            )

        return bug

    def block_bug(
        self,
        bug_id: int,
        blocked_by_bug_id: int,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Bug:
        """Mark a bug as blocked by another bug.

        Raises:
            NotFoundError: Either bug does not exist
            ForbiddenError: The actor's role may not block bugs
        """
        with self._transaction():
            bug = self._load(bug_id)
            if self.bugs.find_by_id(blocked_by_bug_id) is None:
                raise NotFoundError(blocked_by_bug_id, code="BLOCKING_BUG_NOT_FOUND")

            if actor.role not in BLOCKER_ROLES:
                raise ForbiddenError(
                    code="BLOCK_FORBIDDEN",
                    message=f"Role {actor.role.value} cannot block bugs",
                )

            bug.is_blocking = True
            bug.blocked_by_bug_id = blocked_by_bug_id
            bug = self.bugs.save(bug)

            self.audit.record(
                bug_id=bug.id,
                user_id=actor.id,
                action=HistoryAction.BLOCKED,
                old_value="false",
                new_value=_bug_ref(blocked_by_bug_id),
                description=reason or f"Bug blocked by #{blocked_by_bug_id}",
            )

        return bug

    def unblock_bug(self, bug_id: int, actor: Actor, reason: Optional[str] = None) -> Bug:
        """Clear a bug's blocking relationship.

        Raises:
            NotFoundError: The bug does not exist
            ForbiddenError: The actor's role may not unblock bugs
        """
        with self._transaction():
            bug = self._load(bug_id)

            if actor.role not in BLOCKER_ROLES:
                raise ForbiddenError(
                    code="BLOCK_FORBIDDEN",
                    message=f"Role {actor.role.value} cannot unblock bugs",
                )

            previous = bug.blocked_by_bug_id
            bug.is_blocking = False
            bug.blocked_by_bug_id = None
            bug = self.bugs.save(bug)

            self.audit.record(
                bug_id=bug.id,
                user_id=actor.id,
                action=HistoryAction.UNBLOCKED,
                old_value=_bug_ref(previous),
                new_value="false",
                description=reason or "Bug unblocked",
            )

        return bug

    def get_history(self, bug_id: int) -> List[HistoryEntry]:
        """Return the bug's audit trail, newest first."""
        return self.audit.find_by_bug(bug_id)

    def allowed_transitions(self, bug_id: int, actor: Actor) -> List[BugStatus]:
        """List the statuses the actor may move this bug into, in workflow order."""
        bug = self._load(bug_id)
        targets = allowed_targets(actor.role, bug.status)
        return [status for status in BugStatus if status in targets]
