"""
Authorization Service

Narrows queries to the data sets the caller may see. Data sets with an
empty allowed-identity list are public; otherwise the caller's identity
must be listed. Root identities and the explicit system context see
everything. Translations inherit visibility from their data set, and
translations without a data set are never visible to a gated caller.
Operation logs are root-only.

Anything hidden is reported as absent, never as "forbidden".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import false, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from datamanager.models import DataSet, Translation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationContext:
    """Who is asking. Passed explicitly down every call chain."""

    identity_id: str | None = None
    is_root: bool = False
    enforce: bool = True

    @classmethod
    def system(cls) -> AuthorizationContext:
        """Unchecked context for internal core operations."""
        return cls(identity_id="system", is_root=False, enforce=False)

    @classmethod
    def anonymous(cls) -> AuthorizationContext:
        return cls()

    @property
    def user_name(self) -> str | None:
        return self.identity_id


@dataclass(frozen=True)
class AccessibleDataSets:
    all_accessible: bool
    ids: frozenset[UUID] = field(default_factory=frozenset)

    def allows(self, data_set_id: UUID | None) -> bool:
        if self.all_accessible:
            return True
        return data_set_id is not None and data_set_id in self.ids


class AuthorizationService:
    def __init__(self, db: AsyncSession, context: AuthorizationContext):
        self.db = db
        self.context = context
        self._accessible: AccessibleDataSets | None = None

    async def get_accessible_data_set_ids(self) -> AccessibleDataSets:
        if self._accessible is not None:
            return self._accessible

        if self.has_root_access():
            self._accessible = AccessibleDataSets(all_accessible=True)
            return self._accessible

        result = await self.db.execute(select(DataSet.id, DataSet.allowed_identity_ids))
        identity = self.context.identity_id
        ids = frozenset(
            data_set_id
            for data_set_id, allowed in result.all()
            if not allowed or (identity is not None and identity in allowed)
        )
        logger.debug(f"Identity {identity} can access {len(ids)} data sets")
        self._accessible = AccessibleDataSets(all_accessible=False, ids=ids)
        return self._accessible

    async def can_access_data_set(self, data_set_id: UUID | None) -> bool:
        accessible = await self.get_accessible_data_set_ids()
        return accessible.allows(data_set_id)

    def has_root_access(self) -> bool:
        return not self.context.enforce or self.context.is_root

    # ── Predicates ────────────────────────────────────────────────────────────

    async def data_set_predicate(self) -> ColumnElement[bool] | None:
        """None means no narrowing is needed."""
        accessible = await self.get_accessible_data_set_ids()
        if accessible.all_accessible:
            return None
        if not accessible.ids:
            return false()
        return DataSet.id.in_(sorted(accessible.ids))

    async def translation_predicate(self) -> ColumnElement[bool] | None:
        accessible = await self.get_accessible_data_set_ids()
        if accessible.all_accessible:
            return None
        if not accessible.ids:
            return false()
        return Translation.data_set_id.is_not(None) & Translation.data_set_id.in_(sorted(accessible.ids))

    async def log_predicate(self) -> ColumnElement[bool] | None:
        """Logs are visible to root identities and the system context only."""
        if self.has_root_access():
            return None
        return false()

    def invalidate(self) -> None:
        self._accessible = None
