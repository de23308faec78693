"""Create users, bugs and bug_history tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17

``bugs.version`` is the optimistic concurrency counter; ``bug_history`` is
append-only.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ROLES = ("admin", "project_manager", "developer", "qa", "tester", "client", "viewer")
STATUSES = (
    "open", "in_progress", "code_review", "qa_testing",
    "resolved", "closed", "reopened", "rejected",
)
ACTIONS = (
    "created", "status_changed", "assigned", "priority_changed", "severity_changed",
    "commented", "attachment_added", "resolved", "closed", "reopened",
    "qa_assigned", "code_review_requested", "blocked", "unblocked",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column(
            "role",
            sa.Enum(*ROLES, name="user_role", create_constraint=True),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "bugs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="bug_status", create_constraint=True),
            nullable=False,
            server_default="open",
        ),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "critical", name="bug_priority", create_constraint=True),
            nullable=False,
            server_default="medium",
        ),
        sa.Column(
            "severity",
            sa.Enum("minor", "major", "critical", "blocker", name="bug_severity", create_constraint=True),
            nullable=False,
            server_default="minor",
        ),
        sa.Column(
            "type",
            sa.Enum("bug", "feature", "improvement", "task", name="bug_type", create_constraint=True),
            nullable=False,
            server_default="bug",
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qa_assignee_id", sa.Integer, nullable=True),
        sa.Column("is_blocking", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("blocked_by_bug_id", sa.Integer, sa.ForeignKey("bugs.id"), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_bugs_status", "bugs", ["status"])
    op.create_index("ix_bugs_qa_assignee_id", "bugs", ["qa_assignee_id"])
    op.create_index("ix_bugs_blocked_by_bug_id", "bugs", ["blocked_by_bug_id"])
    op.create_index("ix_bugs_status_priority", "bugs", ["status", "priority"])

    op.create_table(
        "bug_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "bug_id",
            sa.Integer,
            sa.ForeignKey("bugs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(*ACTIONS, name="bug_history_action", create_constraint=True),
            nullable=False,
        ),
        sa.Column("old_value", sa.Text, nullable=True),
        sa.Column("new_value", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_bug_history_bug_id", "bug_history", ["bug_id"])
    op.create_index("ix_bug_history_user_id", "bug_history", ["user_id"])
    op.create_index("ix_bug_history_action", "bug_history", ["action"])
    op.create_index("ix_bug_history_bug_created", "bug_history", ["bug_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_bug_history_bug_created", table_name="bug_history")
    op.drop_index("ix_bug_history_action", table_name="bug_history")
    op.drop_index("ix_bug_history_user_id", table_name="bug_history")
    op.drop_index("ix_bug_history_bug_id", table_name="bug_history")
    op.drop_table("bug_history")

    op.drop_index("ix_bugs_status_priority", table_name="bugs")
    op.drop_index("ix_bugs_blocked_by_bug_id", table_name="bugs")
    op.drop_index("ix_bugs_qa_assignee_id", table_name="bugs")
    op.drop_index("ix_bugs_status", table_name="bugs")
    op.drop_table("bugs")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")

    # Drop PostgreSQL enum types (no-op for SQLite)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "bug_history_action", "bug_type", "bug_severity",
            "bug_priority", "bug_status", "user_role",
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
