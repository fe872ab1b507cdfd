"""create_data_sets_and_translations

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-16

Creates the data set tables (data_sets, data_set_includes) and the
versioned translations table with its partial unique index on current rows.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "data_sets",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("allowed_identity_ids", sa.JSON, nullable=False),
        sa.Column("available_cultures", sa.JSON, nullable=False),
        sa.Column("secret_key", sa.String(500), nullable=True),
        sa.Column("webhook_urls", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.Column("created_by", sa.String(200), nullable=True),
        sa.Column("updated_by", sa.String(200), nullable=True),
    )
    op.create_index("ix_data_sets_name", "data_sets", ["name"], unique=True)

    op.create_table(
        "data_set_includes",
        sa.Column(
            "parent_data_set_id",
            sa.Uuid,
            sa.ForeignKey("data_sets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "included_data_set_id",
            sa.Uuid,
            sa.ForeignKey("data_sets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_data_set_includes_included_data_set_id", "data_set_includes", ["included_data_set_id"])

    op.create_table(
        "translations",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("internal_group_name1", sa.String(200), nullable=True),
        sa.Column("internal_group_name2", sa.String(200), nullable=True),
        sa.Column("resource_name", sa.String(200), nullable=False),
        sa.Column("translation_name", sa.String(200), nullable=False),
        sa.Column("translation_key", sa.String(400), nullable=False),
        sa.Column("culture_name", sa.String(10), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("content_template", sa.Text, nullable=True),
        sa.Column("content_updated_at", sa.DateTime, nullable=True),
        sa.Column("data_set_id", sa.Uuid, sa.ForeignKey("data_sets.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "source_translation_id", sa.Uuid, sa.ForeignKey("translations.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("source_translation_last_synced_at", sa.DateTime, nullable=True),
        sa.Column("layout_id", sa.Uuid, sa.ForeignKey("translations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source_id", sa.Uuid, sa.ForeignKey("translations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_current_version", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_draft_version", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_old_version", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "original_translation_id", sa.Uuid, sa.ForeignKey("translations.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.Column("created_by", sa.String(200), nullable=True),
        sa.Column("updated_by", sa.String(200), nullable=True),
    )
    for column in (
        "translation_key",
        "culture_name",
        "data_set_id",
        "source_translation_id",
        "layout_id",
        "source_id",
        "original_translation_id",
    ):
        op.create_index(f"ix_translations_{column}", "translations", [column])

    op.create_index(
        "uq_translations_current_key",
        "translations",
        ["resource_name", "translation_name", "culture_name", "data_set_id"],
        unique=True,
        sqlite_where=sa.text("is_current_version = 1"),
        postgresql_where=sa.text("is_current_version"),
    )
    op.create_index(
        "idx_translations_version_flags",
        "translations",
        ["is_current_version", "is_draft_version", "is_old_version"],
    )
    op.create_index(
        "idx_translations_groups",
        "translations",
        ["internal_group_name1", "internal_group_name2", "resource_name", "culture_name"],
    )


def downgrade() -> None:
    op.drop_table("translations")
    op.drop_table("data_set_includes")
    op.drop_table("data_sets")
