"""
Tests for the SQL workflow collaborators.

Verifies:
- BugService creates open bugs with a CREATED history entry
- SqlBugStore round-trips workflow fields and enforces the version counter
- SqlAuditTrail ordering
- The engine wired by build_workflow_engine commits or rolls back as a unit
"""

import pytest
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from bug_workflow.db.models import BugHistoryModel, BugModel, UserModel
from bug_workflow.db.services import BugService, UserService, build_workflow_engine
from bug_workflow.db.stores import SqlAuditTrail, SqlBugStore, SqlUserDirectory
from bug_workflow.workflow import (
    Actor,
    BugStatus,
    ForbiddenError,
    HistoryAction,
    NotFoundError,
    Role,
)
from bug_workflow.workflow.schemas import BugCreate, UserCreate


@pytest.fixture
def users(db_session):
    """Seed a reporter, a developer and QA user 42."""
    db_session.add_all(
        [
            UserModel(id=1, first_name="Rita", last_name="Reporter", email="rita@example.com", role="client"),
            UserModel(id=7, first_name="Dev", last_name="Eloper", email="dev@example.com", role="developer"),
            UserModel(id=42, first_name="Quinn", last_name="Tester", email="quinn@example.com", role="qa"),
        ]
    )
    db_session.commit()


@pytest.fixture
def bug(db_session, users, clock):
    service = BugService(db_session, audit=SqlAuditTrail(db_session, clock=clock))
    return service.create(BugCreate(title="Checkout total off by one cent"), reporter_id=1)


class TestBugService:
    def test_create_starts_open(self, bug):
        assert bug.id is not None
        assert bug.status == BugStatus.OPEN
        assert bug.is_blocking is False
        assert bug.version == 1

    def test_create_records_history(self, db_session, bug):
        entries = SqlAuditTrail(db_session).find_by_bug(bug.id)

        assert len(entries) == 1
        assert entries[0].action == HistoryAction.CREATED
        assert entries[0].user_id == 1
        assert entries[0].new_value == "open"

    def test_get_missing_returns_none(self, db_session):
        assert BugService(db_session).get(12345) is None


class TestUserDirectory:
    def test_display_name(self, db_session, users):
        user = SqlUserDirectory(db_session).find_by_id(42)

        assert user.display_name == "Quinn Tester"
        assert user.role == Role.QA

    def test_missing_user(self, db_session):
        assert SqlUserDirectory(db_session).find_by_id(999) is None

    def test_user_service_create(self, db_session):
        created = UserService(db_session).create(
            UserCreate(first_name="Pat", last_name="Manager", email="pat@example.com", role=Role.PROJECT_MANAGER)
        )

        assert created.id is not None
        assert created.to_dict()["display_name"] == "Pat Manager"
        assert UserService(db_session).get_by_email("pat@example.com").id == created.id


class TestSqlBugStore:
    def test_save_writes_fields_and_bumps_version(self, db_session, bug):
        store = SqlBugStore(db_session)
        loaded = store.find_by_id(bug.id)
        loaded.status = BugStatus.IN_PROGRESS
        loaded.qa_assignee_id = 42

        saved = store.save(loaded)
        db_session.commit()

        assert saved.status == BugStatus.IN_PROGRESS
        assert saved.qa_assignee_id == 42
        assert saved.version == 2

    def test_stale_version_is_rejected(self, db_session, bug):
        store = SqlBugStore(db_session)
        loaded = store.find_by_id(bug.id)

        # Another writer bumps the row underneath us
        db_session.execute(
            update(BugModel).where(BugModel.id == bug.id).values(version=BugModel.version + 1)
        )

        loaded.status = BugStatus.IN_PROGRESS
        with pytest.raises(StaleDataError):
            store.save(loaded)


class TestSqlAuditTrail:
    def test_newest_first_with_ties_broken_by_id(self, db_session, bug, clock):
        audit = SqlAuditTrail(db_session, clock=clock)
        # Same timestamp as the CREATED entry
        audit.record(bug.id, 7, HistoryAction.COMMENTED, description="Repro attached")
        clock.advance()
        audit.record(bug.id, 7, HistoryAction.ATTACHMENT_ADDED)
        db_session.commit()

        actions = [e.action for e in audit.find_by_bug(bug.id)]

        assert actions == [
            HistoryAction.ATTACHMENT_ADDED,
            HistoryAction.COMMENTED,
            HistoryAction.CREATED,
        ]


class TestSqlWorkflowEngine:
    def test_assign_qa_scenario(self, db_session, bug, clock):
        engine = build_workflow_engine(db_session, clock=clock)

        updated = engine.assign_qa(bug.id, 42, Actor(id=7, role=Role.DEVELOPER))

        assert updated.qa_assignee_id == 42
        entry = engine.get_history(bug.id)[0]
        assert entry.action == HistoryAction.QA_ASSIGNED
        assert entry.new_value == "Quinn Tester"
        assert entry.old_value == "None"

    def test_transition_is_committed_with_history(self, db_session, bug, clock):
        engine = build_workflow_engine(db_session, clock=clock)
        clock.advance()

        engine.transition_status(bug.id, BugStatus.IN_PROGRESS, Actor(id=7, role=Role.DEVELOPER))
        db_session.rollback()  # nothing pending; the engine already committed

        row = db_session.get(BugModel, bug.id)
        assert row.status == "in_progress"
        assert db_session.query(BugHistoryModel).filter_by(bug_id=bug.id).count() == 2

    def test_resolved_at_survives_reopen(self, db_session, bug, clock):
        engine = build_workflow_engine(db_session, clock=clock)
        admin = Actor(id=7, role=Role.ADMIN)

        resolved_time = clock.advance()
        resolved = engine.transition_status(bug.id, BugStatus.RESOLVED, admin)
        clock.advance(120)
        reopened = engine.transition_status(bug.id, BugStatus.REOPENED, admin)

        assert resolved.resolved_at == resolved_time
        assert reopened.resolved_at == resolved_time
        assert reopened.closed_at is None

    def test_forbidden_writes_nothing(self, db_session, bug, clock):
        engine = build_workflow_engine(db_session, clock=clock)

        with pytest.raises(ForbiddenError):
            engine.transition_status(bug.id, BugStatus.IN_PROGRESS, Actor(id=1, role=Role.CLIENT))

        assert db_session.get(BugModel, bug.id).status == "open"
        assert db_session.query(BugHistoryModel).filter_by(bug_id=bug.id).count() == 1

    def test_block_requires_existing_blocker(self, db_session, bug, clock):
        engine = build_workflow_engine(db_session, clock=clock)

        with pytest.raises(NotFoundError):
            engine.block_bug(bug.id, 999, Actor(id=7, role=Role.DEVELOPER))

        row = db_session.get(BugModel, bug.id)
        assert row.is_blocking is False
        assert row.blocked_by_bug_id is None

    def test_block_and_unblock(self, db_session, users, bug, clock):
        blocker = BugService(db_session).create(BugCreate(title="Payment API timeout"), reporter_id=1)
        engine = build_workflow_engine(db_session, clock=clock)
        dev = Actor(id=7, role=Role.DEVELOPER)

        blocked = engine.block_bug(bug.id, blocker.id, dev)
        assert blocked.is_blocking is True
        assert blocked.blocked_by_bug_id == blocker.id

        clock.advance()
        unblocked = engine.unblock_bug(bug.id, dev)
        assert unblocked.is_blocking is False
        assert unblocked.blocked_by_bug_id is None

        latest = engine.get_history(bug.id)[0]
        assert latest.action == HistoryAction.UNBLOCKED
        assert latest.old_value == f"Bug #{blocker.id}"


@pytest.fixture
def filed_bug(file_sessions, clock):
    """Bug filed by a client in a file database, with a developer and an admin on hand."""
    with file_sessions() as db:
        db.add_all(
            [
                UserModel(id=1, first_name="Rita", last_name="Reporter", email="rita@example.com", role="client"),
                UserModel(id=7, first_name="Dev", last_name="Eloper", email="dev@example.com", role="developer"),
                UserModel(id=9, first_name="Ada", last_name="Admin", email="ada@example.com", role="admin"),
            ]
        )
        db.commit()
        service = BugService(db, audit=SqlAuditTrail(db, clock=clock))
        return service.create(BugCreate(title="Invoice PDF renders blank"), reporter_id=1).id


class TestConcurrentUpdates:
    def test_stale_write_rolls_back_bug_and_history(self, file_sessions, filed_bug, clock):
        first = file_sessions()
        second = file_sessions()
        try:
            # first holds the row as it was before the other writer commits
            held = first.get(BugModel, filed_bug)  # noqa: F841 -- keep the stale row in the identity map

            clock.advance()
            build_workflow_engine(second, clock=clock).transition_status(
                filed_bug, BugStatus.IN_PROGRESS, Actor(id=7, role=Role.DEVELOPER)
            )

            clock.advance()
            with pytest.raises(StaleDataError):
                build_workflow_engine(first, clock=clock).transition_status(
                    filed_bug, BugStatus.RESOLVED, Actor(id=9, role=Role.ADMIN)
                )
        finally:
            first.close()
            second.close()

        with file_sessions() as db:
            row = db.get(BugModel, filed_bug)
            assert row.status == "in_progress"
            assert row.resolved_at is None
            assert row.version == 2
            assert db.query(BugHistoryModel).filter_by(bug_id=filed_bug).count() == 2


class TestForeignKeys:
    def test_unknown_qa_assignee_is_stored(self, file_sessions, filed_bug, clock):
        clock.advance()
        with file_sessions() as db:
            engine = build_workflow_engine(db, clock=clock)
            updated = engine.assign_qa(filed_bug, 404, Actor(id=7, role=Role.DEVELOPER))
            entry = engine.get_history(filed_bug)[0]

        assert updated.qa_assignee_id == 404
        assert entry.action == HistoryAction.QA_ASSIGNED
        assert entry.new_value == "None"
