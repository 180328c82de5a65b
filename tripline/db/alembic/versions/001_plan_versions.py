"""Plan version schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- trip (trip context document)
- plan_version (immutable version headers, unique per trip and number)
- time_block (append-only blocks keyed by version and position)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create plan version tables."""
    # trip table
    op.create_table(
        "trip",
        sa.Column("trip_id", sa.Text(), primary_key=True),
        sa.Column("data", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # plan_version table
    op.create_table(
        "plan_version",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("trip_id", sa.Text(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("change_summary", sa.Text(), nullable=False),
        sa.UniqueConstraint("trip_id", "version_number", name="uq_plan_version_trip_number"),
        sa.CheckConstraint("version_number >= 1", name="ck_plan_version_number_positive"),
    )
    op.create_index("idx_plan_version_trip", "plan_version", ["trip_id", "version_number"])

    # time_block table
    op.create_table(
        "time_block",
        sa.Column("plan_version_id", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("block_type", sa.Text(), nullable=False),
        sa.Column("block_id", sa.Text(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("segment_id", sa.Text(), nullable=True),
        sa.Column("selected_activity_id", sa.Text(), nullable=True),
        sa.Column("selected_meal_id", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("plan_version_id", "date", "block_type"),
        sa.ForeignKeyConstraint(["plan_version_id"], ["plan_version.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "block_type IN ('morning', 'lunch', 'afternoon', 'dinner', 'evening')",
            name="ck_time_block_type",
        ),
        sa.CheckConstraint(
            "selected_activity_id IS NULL OR selected_meal_id IS NULL",
            name="ck_time_block_single_selection",
        ),
    )
    op.create_index("ix_time_block_block_id", "time_block", ["block_id"])


def downgrade() -> None:
    """Drop plan version tables."""
    op.drop_index("ix_time_block_block_id", table_name="time_block")
    op.drop_table("time_block")
    op.drop_index("idx_plan_version_trip", table_name="plan_version")
    op.drop_table("plan_version")
    op.drop_table("trip")
