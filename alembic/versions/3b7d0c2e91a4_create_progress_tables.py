"""create catalog and progress tables

Revision ID: 3b7d0c2e91a4
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7d0c2e91a4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("author_id", sa.String(length=64), nullable=True),
        sa.Column(
            "admin_ids",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
    )
    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "course_id",
            sa.String(length=64),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
    )
    op.create_table(
        "tests",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("author_id", sa.String(length=64), nullable=True),
        sa.Column(
            "course_id",
            sa.String(length=64),
            sa.ForeignKey("courses.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_table(
        "test_questions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "test_id",
            sa.String(length=64),
            sa.ForeignKey("tests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("options", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("correct_option", sa.Integer(), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
    )
    op.create_table(
        "test_access_policies",
        sa.Column(
            "test_id",
            sa.String(length=64),
            sa.ForeignKey("tests.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "attempts_allowed", sa.Integer(), nullable=False, server_default="1"
        ),
    )
    op.create_table(
        "course_progress",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column(
            "course_id",
            sa.String(length=64),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("lessons_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hours_spent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("completion_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_accessed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "completed_lesson_ids",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_table(
        "test_progress",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column(
            "test_id",
            sa.String(length=64),
            sa.ForeignKey("tests.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("questions_answered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("attempts_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_table(
        "user_activity",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=False),
        sa.Column("streak_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_table(
        "login_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("login_time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_login_events_user_time", "login_events", ["user_id", "login_time"]
    )


def downgrade() -> None:
    op.drop_index("ix_login_events_user_time", table_name="login_events")
    op.drop_table("login_events")
    op.drop_table("user_activity")
    op.drop_table("test_progress")
    op.drop_table("course_progress")
    op.drop_table("test_access_policies")
    op.drop_table("test_questions")
    op.drop_table("tests")
    op.drop_table("lessons")
    op.drop_table("courses")
