"""add progress timestamps and login streak

Revision ID: 8c1e4f27a5d3
Revises: 3b7d0c2e91a4
Create Date: 2026-10-19 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c1e4f27a5d3"
down_revision: str | Sequence[str] | None = "3b7d0c2e91a4"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    for table in ("course_progress", "test_progress"):
        op.add_column(
            table, sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)
        )
        op.add_column(
            table, sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True)
        )

    # existing rows take their last activity time
    op.execute(
        "UPDATE course_progress SET created_at = last_accessed, updated_at = last_accessed"
    )
    op.execute(
        "UPDATE test_progress SET created_at = last_attempt, updated_at = last_attempt"
    )

    op.add_column(
        "login_events",
        sa.Column("streak_days", sa.Integer(), nullable=False, server_default="1"),
    )


def downgrade() -> None:
    op.drop_column("login_events", "streak_days")
    for table in ("test_progress", "course_progress"):
        op.drop_column(table, "updated_at")
        op.drop_column(table, "created_at")
