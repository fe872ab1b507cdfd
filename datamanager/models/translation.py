"""
Translation model

One row per (resource, translation, culture, data set, version). Exactly one
of is_current_version / is_draft_version / is_old_version is set. Old rows
are history snapshots and are never edited.

Materialized rows are copies pulled into a data set from an included data
set; they point back at their origin through source_translation_id.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text, Uuid, event, text
from sqlalchemy.orm import relationship

from datamanager.database import Base, UTCDateTime, utcnow

MATERIALIZATION_USER = "System.Materialization"


def build_translation_key(resource_name: str | None, translation_name: str | None) -> str:
    return f"{resource_name}_{translation_name}"


class Translation(Base):
    __tablename__ = "translations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Identity of the text ──────────────────────────────────────────────────
    internal_group_name1 = Column(String(200), nullable=True)
    internal_group_name2 = Column(String(200), nullable=True)
    resource_name = Column(String(200), nullable=False)
    translation_name = Column(String(200), nullable=False)
    translation_key = Column(String(400), nullable=False, index=True)
    culture_name = Column(String(10), nullable=True, index=True)  # null = base template

    # ── Content ───────────────────────────────────────────────────────────────
    content = Column(Text, nullable=False)
    content_template = Column(Text, nullable=True)
    content_updated_at = Column(UTCDateTime, nullable=True)

    data_set_id = Column(Uuid, ForeignKey("data_sets.id", ondelete="SET NULL"), nullable=True, index=True)

    # ── Materialization / layout links ────────────────────────────────────────
    source_translation_id = Column(Uuid, ForeignKey("translations.id", ondelete="SET NULL"), nullable=True, index=True)
    source_translation_last_synced_at = Column(UTCDateTime, nullable=True)
    layout_id = Column(Uuid, ForeignKey("translations.id", ondelete="SET NULL"), nullable=True, index=True)
    source_id = Column(Uuid, ForeignKey("translations.id", ondelete="SET NULL"), nullable=True, index=True)

    # ── Version state ─────────────────────────────────────────────────────────
    is_current_version = Column(Boolean, nullable=False, default=True)
    is_draft_version = Column(Boolean, nullable=False, default=False)
    is_old_version = Column(Boolean, nullable=False, default=False)
    original_translation_id = Column(Uuid, ForeignKey("translations.id", ondelete="SET NULL"), nullable=True, index=True)

    # ── Audit ─────────────────────────────────────────────────────────────────
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    created_by = Column(String(200), nullable=True)
    updated_by = Column(String(200), nullable=True)

    data_set = relationship("DataSet", lazy="select")

    __table_args__ = (
        # One current row per key within a data set
        Index(
            "uq_translations_current_key",
            "resource_name",
            "translation_name",
            "culture_name",
            "data_set_id",
            unique=True,
            sqlite_where=text("is_current_version = 1"),
            postgresql_where=text("is_current_version"),
        ),
        Index("idx_translations_version_flags", "is_current_version", "is_draft_version", "is_old_version"),
        Index("idx_translations_groups", "internal_group_name1", "internal_group_name2", "resource_name", "culture_name"),
    )

    @property
    def is_materialized(self) -> bool:
        return self.source_translation_id is not None

    def refresh_translation_key(self) -> None:
        self.translation_key = build_translation_key(self.resource_name, self.translation_name)

    def set_version_state(self, *, current: bool, draft: bool, old: bool) -> None:
        if sum((current, draft, old)) != 1:
            raise ValueError("Exactly one version flag must be set")
        self.is_current_version = current
        self.is_draft_version = draft
        self.is_old_version = old

    def __repr__(self) -> str:
        return (
            f"<Translation id={self.id} key={self.translation_key!r} "
            f"culture={self.culture_name!r} data_set={self.data_set_id}>"
        )


@event.listens_for(Translation, "before_insert")
@event.listens_for(Translation, "before_update")
def _sync_translation_key(mapper, connection, target: Translation) -> None:
    target.refresh_translation_key()
