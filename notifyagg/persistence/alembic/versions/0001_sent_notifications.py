"""sent notification summaries

Revision ID: 0001_sent_notifications
Revises: 
Create Date: 2026-10-12 09:30:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_sent_notifications"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sent_notifications",
        sa.Column("partition_key", sa.String(), nullable=False),
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("total_message_count", sa.Integer(), nullable=False),
        sa.Column("succeeded", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("throttled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("failed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("unknown", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("partition_key", "id"),
    )
    # Operators look for campaigns still waiting on outcomes.
    op.create_index(
        "ix_sent_notifications_partition_completed",
        "sent_notifications",
        ["partition_key", "is_completed"],
    )


def downgrade() -> None:
    op.drop_index("ix_sent_notifications_partition_completed", table_name="sent_notifications")
    op.drop_table("sent_notifications")
