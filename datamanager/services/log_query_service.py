from uuid import UUID

from sqlalchemy.sql.elements import ColumnElement

import datamanager.services.filter_handlers  # noqa: F401  registers handlers
from datamanager.exceptions import LogNotFoundError
from datamanager.models import Log
from datamanager.schemas.query import Page
from datamanager.services.authorization_service import AccessibleDataSets
from datamanager.services.query_service import QueryOptions, QueryService


class LogQueryService(QueryService[Log]):
    """Operation logs, root only. Everyone else gets an empty result."""

    model = Log
    default_order_by = ("started_at",)

    async def authorization_predicate(self) -> ColumnElement[bool] | None:
        return await self.authorization.log_predicate()

    def is_locally_visible(self, entity: Log, accessible: AccessibleDataSets) -> bool:
        return self.authorization.has_root_access()

    async def get_logs(self, options: QueryOptions | None = None) -> Page:
        return await self.get_page(options)

    async def get_log(self, log_id: UUID) -> Log:
        log = await self.get_by_id(log_id)
        if log is None:
            raise LogNotFoundError(log_id)
        return log
