"""
DataSet and DataSetInclude models

A data set is a named collection of translations. Data sets include one
another through DataSetInclude edges; the edges form a directed graph that
may contain cycles, which the hierarchy resolver tolerates.
"""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, Column, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from datamanager.database import Base, UTCDateTime, utcnow


class DataSet(Base):
    __tablename__ = "data_sets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(String(1000), nullable=True)
    notes = Column(Text, nullable=True)

    # ── Access & configuration ────────────────────────────────────────────────
    # Empty list means the data set is public
    allowed_identity_ids = Column(JSON, nullable=False, default=list)
    # Empty list means every system culture is available
    available_cultures = Column(JSON, nullable=False, default=list)
    secret_key = Column(String(500), nullable=True)
    webhook_urls = Column(JSON, nullable=False, default=list)

    # ── Audit ─────────────────────────────────────────────────────────────────
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    created_by = Column(String(200), nullable=True)
    updated_by = Column(String(200), nullable=True)

    # ── Relationships ─────────────────────────────────────────────────────────
    includes = relationship(
        "DataSetInclude",
        foreign_keys="DataSetInclude.parent_data_set_id",
        back_populates="parent_data_set",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="DataSetInclude.created_at",
    )
    included_in = relationship(
        "DataSetInclude",
        foreign_keys="DataSetInclude.included_data_set_id",
        viewonly=True,
        lazy="select",
    )

    @property
    def included_data_set_ids(self) -> list[uuid.UUID]:
        return [edge.included_data_set_id for edge in self.includes]

    def __repr__(self) -> str:
        return f"<DataSet id={self.id} name={self.name!r}>"


class DataSetInclude(Base):
    """Directed edge: the parent data set includes the included data set."""

    __tablename__ = "data_set_includes"

    parent_data_set_id = Column(
        Uuid,
        ForeignKey("data_sets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    included_data_set_id = Column(
        Uuid,
        ForeignKey("data_sets.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    parent_data_set = relationship("DataSet", foreign_keys=[parent_data_set_id], back_populates="includes")
    included_data_set = relationship("DataSet", foreign_keys=[included_data_set_id])
