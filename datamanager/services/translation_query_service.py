from sqlalchemy.sql.elements import ColumnElement

import datamanager.services.filter_handlers  # noqa: F401  registers handlers
from datamanager.models import Translation
from datamanager.schemas.filters import VersionStatusFilter
from datamanager.schemas.query import FilteringParameters
from datamanager.services.authorization_service import AccessibleDataSets
from datamanager.services.query_service import QueryService


class TranslationQueryService(QueryService[Translation]):
    """Translation queries. Only current versions unless the caller asks for version states."""

    model = Translation
    default_order_by = ("translation_key", "culture_name")

    async def authorization_predicate(self) -> ColumnElement[bool] | None:
        return await self.authorization.translation_predicate()

    def is_locally_visible(self, entity: Translation, accessible: AccessibleDataSets) -> bool:
        return accessible.allows(entity.data_set_id)

    def prepare_filtering(self, filtering: FilteringParameters) -> list[ColumnElement[bool]]:
        # Presence counts, even when the filter is inactive
        if filtering.has_filter(VersionStatusFilter):
            return []
        return [Translation.is_current_version.is_(True)]
