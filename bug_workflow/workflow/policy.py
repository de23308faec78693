"""
Transition policy for bug statuses.

A pure, testable lookup: for a role and the bug's current status, which
statuses may the bug move into in one hop. No DB access, no request objects.

Policy rules:
- ADMIN and PROJECT_MANAGER may move a bug from any status to any status
  (including its current one). This is the escalation path around the table.
- DEVELOPER pushes work forward into review and QA, and picks reopened or
  rejected bugs back up. Developers cannot certify QA or close.
- QA and TESTER take bugs out of code review, certify or bounce them, close
  resolved bugs and reopen closed ones.
- CLIENT may only reopen a closed bug.
- VIEWER is read-only.

Any (role, status) pair not listed yields the empty set.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping

from .enums import BugStatus, Role

ALL_STATUSES: FrozenSet[BugStatus] = frozenset(BugStatus)

# Roles that bypass the table entirely
OVERRIDE_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.PROJECT_MANAGER})

_NONE: FrozenSet[BugStatus] = frozenset()

_DEVELOPER: Dict[BugStatus, FrozenSet[BugStatus]] = {
    BugStatus.OPEN: frozenset({BugStatus.IN_PROGRESS}),
    BugStatus.IN_PROGRESS: frozenset({BugStatus.CODE_REVIEW, BugStatus.RESOLVED}),
    BugStatus.CODE_REVIEW: frozenset({BugStatus.IN_PROGRESS, BugStatus.QA_TESTING}),
    BugStatus.QA_TESTING: _NONE,
    BugStatus.RESOLVED: _NONE,
    BugStatus.CLOSED: _NONE,
    BugStatus.REOPENED: frozenset({BugStatus.IN_PROGRESS}),
    BugStatus.REJECTED: frozenset({BugStatus.IN_PROGRESS}),
}

_QA: Dict[BugStatus, FrozenSet[BugStatus]] = {
    BugStatus.OPEN: _NONE,
    BugStatus.IN_PROGRESS: _NONE,
    BugStatus.CODE_REVIEW: frozenset({BugStatus.QA_TESTING}),
    BugStatus.QA_TESTING: frozenset({BugStatus.RESOLVED, BugStatus.REOPENED}),
    BugStatus.RESOLVED: frozenset({BugStatus.CLOSED, BugStatus.REOPENED}),
    BugStatus.CLOSED: frozenset({BugStatus.REOPENED}),
    BugStatus.REOPENED: _NONE,
    BugStatus.REJECTED: _NONE,
}

_CLIENT: Dict[BugStatus, FrozenSet[BugStatus]] = {
    status: (frozenset({BugStatus.REOPENED}) if status is BugStatus.CLOSED else _NONE)
    for status in BugStatus
}

_VIEWER: Dict[BugStatus, FrozenSet[BugStatus]] = {status: _NONE for status in BugStatus}

TRANSITION_TABLE: Mapping[Role, Mapping[BugStatus, FrozenSet[BugStatus]]] = {
    Role.DEVELOPER: _DEVELOPER,
    Role.QA: _QA,
    Role.TESTER: _QA,
    Role.CLIENT: _CLIENT,
    Role.VIEWER: _VIEWER,
}


def allowed_targets(role: Role, from_status: BugStatus) -> FrozenSet[BugStatus]:
    """
    Return the statuses ``role`` may move a bug into from ``from_status``.

    Total over every (role, status) pair: disallowed combinations return an
    empty set rather than raising.
    """
    role = Role(role)
    from_status = BugStatus(from_status)

    if role in OVERRIDE_ROLES:
        return ALL_STATUSES

    return TRANSITION_TABLE[role][from_status]


def can_transition(role: Role, from_status: BugStatus, to_status: BugStatus) -> bool:
    """Check a single one-hop transition against the policy."""
    return BugStatus(to_status) in allowed_targets(role, from_status)
