"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bug_workflow.api import app
from bug_workflow.db.base import Base, get_db
from bug_workflow.workflow import (
    Bug,
    BugStatus,
    InMemoryAuditTrail,
    InMemoryBugStore,
    InMemoryUserDirectory,
    UserSummary,
    WorkflowEngine,
)
from bug_workflow.workflow.ports import Clock


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: int = 1) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2026, 1, 26, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def bug_store() -> InMemoryBugStore:
    return InMemoryBugStore(
        [
            Bug(id=1, title="Login button misaligned", status=BugStatus.CODE_REVIEW),
            Bug(id=2, title="Crash on empty cart", status=BugStatus.OPEN),
            Bug(id=3, title="Typo in footer", status=BugStatus.IN_PROGRESS),
        ]
    )


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory(
        [
            UserSummary(id=42, display_name="Quinn Tester"),
            UserSummary(id=43, display_name="Alex Reviewer"),
        ]
    )


@pytest.fixture
def audit_trail(clock) -> InMemoryAuditTrail:
    return InMemoryAuditTrail(clock=clock)


@pytest.fixture
def engine(bug_store, user_directory, audit_trail, clock) -> WorkflowEngine:
    """Workflow engine over in-memory collaborators."""
    return WorkflowEngine(
        bugs=bug_store,
        users=user_directory,
        audit=audit_trail,
        clock=clock,
    )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Create a fresh in-memory database for each test."""
    db_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(db_engine)
    session = sessionmaker(bind=db_engine, autoflush=False)()
    yield session
    session.close()
    db_engine.dispose()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """API client bound to a fresh in-memory database."""
    db_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(db_engine)
    session_local = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    db_engine.dispose()


@pytest.fixture
def file_sessions(tmp_path) -> Generator[sessionmaker, None, None]:
    """Sessionmaker over a SQLite file with foreign keys enforced.

    Unlike the in-memory fixtures, each session gets its own connection, so
    one session can commit underneath another.
    """
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'workflow.db'}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(db_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(db_engine)
    yield sessionmaker(bind=db_engine, autoflush=False)
    db_engine.dispose()
