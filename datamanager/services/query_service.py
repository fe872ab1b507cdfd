"""
Query Service

Entity-agnostic query composition. A concrete service names its model,
its authorization predicate and its default ordering; everything else
(filters, ordering, paging, eager loading, projection) is shared:

    prepared = await service.prepare_query(options=QueryOptions(filtering=...))
    page = await service.execute(prepared)

Authorization is always applied first, so no combination of filters can
widen what the caller sees.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, asc, desc, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from datamanager.schemas.filters import QueryFilter
from datamanager.schemas.query import FilteringParameters, OrderingParameters, Page, PaginationParameters
from datamanager.services.authorization_service import AccessibleDataSets, AuthorizationService
from datamanager.services.filter_registry import FilterHandlerRegistry, filter_registry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


@dataclass
class QueryOptions:
    filtering: FilteringParameters = field(default_factory=FilteringParameters)
    ordering: OrderingParameters | None = None
    pagination: PaginationParameters | None = None
    # Loader options, e.g. selectinload(DataSet.includes)
    includes: Sequence[Any] = ()
    # Columns to project instead of whole entities
    selector: Sequence[Any] | None = None
    # Applied to every returned item (entity or projected row)
    mapper: Callable[[Any], Any] | None = None

    @classmethod
    def with_filters(cls, *filters: QueryFilter, **kwargs: Any) -> QueryOptions:
        return cls(filtering=FilteringParameters(query_filters=list(filters)), **kwargs)


@dataclass
class PreparedQuery:
    """A composed, not yet executed query."""

    statement: Select
    pagination: PaginationParameters = field(default_factory=PaginationParameters)
    selector: Sequence[Any] | None = None
    mapper: Callable[[Any], Any] | None = None


class QueryService(Generic[ModelT]):
    model: ClassVar[type]
    default_order_by: ClassVar[tuple[str, ...]] = ("created_at",)

    def __init__(
        self,
        db: AsyncSession,
        authorization: AuthorizationService,
        registry: FilterHandlerRegistry | None = None,
    ):
        self.db = db
        self.authorization = authorization
        self.registry = registry or filter_registry

    # ── Hooks for concrete services ───────────────────────────────────────────

    def default_query(self) -> Select:
        return select(self.model)

    async def authorization_predicate(self) -> ColumnElement[bool] | None:
        raise NotImplementedError

    def is_locally_visible(self, entity: ModelT, accessible: AccessibleDataSets) -> bool:
        raise NotImplementedError

    def prepare_filtering(self, filtering: FilteringParameters) -> list[ColumnElement[bool]]:
        """Predicates added regardless of the caller's filters."""
        return []

    # ── Composition ───────────────────────────────────────────────────────────

    async def apply_authorization(self, stmt: Select) -> Select:
        predicate = await self.authorization_predicate()
        if predicate is not None:
            stmt = stmt.where(predicate)
        return stmt

    async def apply_filters(self, stmt: Select, filtering: FilteringParameters) -> Select:
        handlers = self.registry.handlers_for(self.model)
        for query_filter in filtering.active_filters():
            handler = handlers.get(type(query_filter))
            if handler is None:
                logger.debug(f"No {self.model.__name__} handler for filter {query_filter.name}, ignoring")
                continue
            stmt = stmt.where(await handler(query_filter))

        for predicate in self.prepare_filtering(filtering):
            stmt = stmt.where(predicate)
        return stmt

    def apply_ordering(self, stmt: Select, ordering: OrderingParameters | None) -> Select:
        columns = self.model.__table__.columns
        direction = desc if ordering is not None and ordering.descending else asc

        order_column = columns.get(ordering.order_by) if ordering and ordering.order_by else None
        if order_column is None:
            if ordering is not None and ordering.order_by:
                logger.debug(f"Unknown order field {ordering.order_by} for {self.model.__name__}, using default")
            clauses = [direction(columns[name]) for name in self.default_order_by]
        else:
            clauses = [direction(order_column)]

        # Primary key last so equal sort values still page deterministically
        clauses.extend(asc(pk) for pk in self.model.__table__.primary_key.columns)
        return stmt.order_by(*clauses)

    async def prepare_query(self, query: Select | None = None, options: QueryOptions | None = None) -> PreparedQuery:
        options = options or QueryOptions()
        stmt = query if query is not None else self.default_query()

        stmt = await self.apply_authorization(stmt)
        stmt = await self.apply_filters(stmt, options.filtering)
        stmt = self.apply_ordering(stmt, options.ordering)
        if options.includes:
            stmt = stmt.options(*options.includes)

        return PreparedQuery(
            statement=stmt,
            pagination=options.pagination or PaginationParameters.all_items(),
            selector=options.selector,
            mapper=options.mapper,
        )

    # ── Execution ─────────────────────────────────────────────────────────────

    async def count(self, prepared: PreparedQuery) -> int:
        count_stmt = select(func.count()).select_from(prepared.statement.order_by(None).subquery())
        return (await self.db.execute(count_stmt)).scalar_one()

    async def fetch(self, prepared: PreparedQuery) -> list[Any]:
        stmt = prepared.statement
        if prepared.pagination.skip:
            stmt = stmt.offset(prepared.pagination.skip)
        if prepared.pagination.take is not None:
            stmt = stmt.limit(prepared.pagination.take)

        if prepared.selector:
            rows = (await self.db.execute(stmt.with_only_columns(*prepared.selector))).all()
        else:
            rows = (await self.db.execute(stmt)).scalars().unique().all()

        if prepared.mapper is not None:
            return [prepared.mapper(row) for row in rows]
        return list(rows)

    async def execute(self, prepared: PreparedQuery) -> Page:
        total_count = await self.count(prepared)
        items = await self.fetch(prepared)
        return Page(
            items=items,
            total_count=total_count,
            skip=prepared.pagination.skip,
            take=prepared.pagination.take,
        )

    async def get_page(self, options: QueryOptions | None = None) -> Page:
        return await self.execute(await self.prepare_query(options=options))

    async def first(self, query: Select | None = None, options: QueryOptions | None = None) -> ModelT | None:
        prepared = await self.prepare_query(query, options)
        result = await self.db.execute(prepared.statement.limit(1))
        return result.scalars().first()

    async def get_by_id(self, entity_id: UUID, options: QueryOptions | None = None) -> ModelT | None:
        query = self.default_query().where(self.model.id == entity_id)
        return await self.first(query, options)

    # ── Session-local view ────────────────────────────────────────────────────

    def _session_entities(self) -> Iterable[ModelT]:
        deleted = set(self.db.deleted)
        seen: set[int] = set()
        for entity in list(self.db.identity_map.values()) + list(self.db.new):
            if not isinstance(entity, self.model) or entity in deleted or id(entity) in seen:
                continue
            # Expired rows (after a rollback) would need a reload, the database query covers them
            if inspect(entity).expired_attributes:
                continue
            seen.add(id(entity))
            yield entity

    async def find_local(self, predicate: Callable[[ModelT], bool]) -> ModelT | None:
        """Search rows already tracked by this session, including unflushed ones."""
        accessible = await self.authorization.get_accessible_data_set_ids()
        for entity in self._session_entities():
            if self.is_locally_visible(entity, accessible) and predicate(entity):
                return entity
        return None
