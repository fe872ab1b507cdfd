"""create_logs

Revision ID: b7e4f2a9c013
Revises: a1b2c3d4e5f6
Create Date: 2026-10-16

Adds the operation log written by webhook delivery.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b7e4f2a9c013"
down_revision: str | None = "a1b2c3d4e5f6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("log_type", sa.String(50), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("target", sa.String(500), nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("started_at", sa.DateTime, nullable=False),
        sa.Column("ended_at", sa.DateTime, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("details", sa.Text, nullable=True),
        sa.Column("data_set_id", sa.Uuid, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.Column("created_by", sa.String(200), nullable=True),
    )
    for column in ("log_type", "status", "started_at", "data_set_id"):
        op.create_index(f"ix_logs_{column}", "logs", [column])
    op.create_index("idx_logs_type_started", "logs", ["log_type", "started_at"])


def downgrade() -> None:
    op.drop_table("logs")
