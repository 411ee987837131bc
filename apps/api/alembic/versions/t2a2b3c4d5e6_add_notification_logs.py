"""Add notification_logs table backing scheduled-notification dedup.

Revision ID: t2a2b3c4d5e6
Revises: t1a2b3c4d5e6
Create Date: 2026-10-01 00:10:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "t2a2b3c4d5e6"
down_revision = "t1a2b3c4d5e6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "notification_logs",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        # URGENT_ALERT | DAILY_PENDING_TASKS | DAILY_SUMMARY | WEEKLY_REPORT | MONTHLY_REPORT
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "payload",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_index(
        "ix_notification_logs_user_type_created",
        "notification_logs",
        ["user_id", "type", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_notification_logs_user_type_created", table_name="notification_logs")
    op.drop_table("notification_logs")
