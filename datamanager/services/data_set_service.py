"""
Data Set Service

Create/update/delete data sets, maintain their include edges and resolve
their hierarchies. All reads go through the authorization gate of the
service's context; pass AuthorizationContext.system() for the unchecked
core variants.
"""

import logging
import uuid
from datetime import timedelta
from uuid import UUID

import httpx
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from datamanager.database import run_in_transaction, utcnow
from datamanager.exceptions import DataSetNotFoundError, DuplicateResourceError, ValidationError
from datamanager.models import DataSet, DataSetInclude, Translation
from datamanager.schemas.data_set import SaveDataSetCommand
from datamanager.schemas.query import Page
from datamanager.services import filter_handlers  # noqa: F401  registers handlers
from datamanager.services.authorization_service import (
    AccessibleDataSets,
    AuthorizationContext,
    AuthorizationService,
)
from datamanager.services.hierarchy import resolve_hierarchy
from datamanager.services.query_service import QueryOptions, QueryService
from datamanager.services.webhook_service import (
    DATA_SET_DELETED,
    DATA_SET_SAVED,
    WebhookNotifier,
    WebhookTarget,
    webhook_notifier,
)
from datamanager.utils.slugify import canonicalize_data_set_name

logger = logging.getLogger(__name__)


def is_valid_webhook_url(url: str | None) -> bool:
    if not url or not url.strip():
        return False
    try:
        parsed = httpx.URL(url.strip())
    except httpx.InvalidURL:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


class DataSetQueryService(QueryService[DataSet]):
    model = DataSet
    default_order_by = ("name",)

    async def authorization_predicate(self) -> ColumnElement[bool] | None:
        return await self.authorization.data_set_predicate()

    def is_locally_visible(self, entity: DataSet, accessible: AccessibleDataSets) -> bool:
        return accessible.allows(entity.id)


class DataSetService:
    def __init__(
        self,
        db: AsyncSession,
        context: AuthorizationContext,
        notifier: WebhookNotifier | None = None,
    ):
        self.db = db
        self.context = context
        self.authorization = AuthorizationService(db, context)
        self.queries = DataSetQueryService(db, self.authorization)
        self.notifier = notifier or webhook_notifier

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def get_data_set(self, data_set_id: UUID) -> DataSet:
        data_set = await self.queries.get_by_id(data_set_id)
        if data_set is None:
            raise DataSetNotFoundError(data_set_id)
        return data_set

    async def list_data_sets(self, options: QueryOptions | None = None) -> Page:
        return await self.queries.get_page(options)

    async def get_accessible_data_set_ids(self) -> AccessibleDataSets:
        return await self.authorization.get_accessible_data_set_ids()

    # ── Hierarchy ─────────────────────────────────────────────────────────────

    async def _load_include_graph(self) -> dict[UUID, list[UUID]]:
        """Visible data set ids mapped to their included ids, in edge order."""
        id_stmt = await self.queries.apply_authorization(select(DataSet.id))
        graph: dict[UUID, list[UUID]] = {data_set_id: [] for data_set_id in (await self.db.scalars(id_stmt)).all()}

        edge_stmt = select(DataSetInclude.parent_data_set_id, DataSetInclude.included_data_set_id).order_by(
            DataSetInclude.parent_data_set_id,
            DataSetInclude.created_at,
            DataSetInclude.included_data_set_id,
        )
        for parent_id, included_id in (await self.db.execute(edge_stmt)).all():
            if parent_id in graph:
                graph[parent_id].append(included_id)
        return graph

    async def get_hierarchy_ids(self, root_id: UUID) -> list[UUID]:
        """Root first, then everything it includes breadth-first; empty if the root is not visible."""
        graph = await self._load_include_graph()
        hierarchy = resolve_hierarchy(root_id, graph)
        logger.debug(f"Hierarchy of {root_id} resolved to {len(hierarchy)} data sets")
        return hierarchy

    async def get_hierarchy(self, root_id: UUID) -> list[DataSet]:
        hierarchy = await self.get_hierarchy_ids(root_id)
        if not hierarchy:
            return []
        result = await self.db.scalars(select(DataSet).where(DataSet.id.in_(hierarchy)))
        by_id = {data_set.id: data_set for data_set in result.all()}
        return [by_id[data_set_id] for data_set_id in hierarchy if data_set_id in by_id]

    # ── Writes ────────────────────────────────────────────────────────────────

    async def save_data_set(self, command: SaveDataSetCommand) -> DataSet:
        try:
            name = canonicalize_data_set_name(command.name)
        except ValueError as e:
            raise ValidationError(str(e), field="name") from e

        webhook_urls = [url.strip() for url in command.webhook_urls if is_valid_webhook_url(url)]
        if len(webhook_urls) != len(command.webhook_urls):
            logger.info(f"Dropped {len(command.webhook_urls) - len(webhook_urls)} invalid webhook URLs for data set {name}")

        included_ids = list(dict.fromkeys(command.included_data_set_ids))

        async def operation() -> DataSet:
            if command.id is not None:
                data_set = await self.get_data_set(command.id)
                data_set.updated_by = self.context.user_name
            else:
                data_set = DataSet(id=uuid.uuid4(), created_by=self.context.user_name, includes=[])
                self.db.add(data_set)

            duplicate = await self.db.scalar(
                select(DataSet.id).where(DataSet.name == name, DataSet.id != data_set.id)
            )
            if duplicate is not None:
                raise DuplicateResourceError("DataSet", "name", name)

            for included_id in included_ids:
                if included_id == data_set.id:
                    continue
                if not await self.authorization.can_access_data_set(included_id):
                    raise DataSetNotFoundError(included_id)
                if await self.db.get(DataSet, included_id) is None:
                    raise DataSetNotFoundError(included_id)

            data_set.name = name
            data_set.description = command.description
            data_set.notes = command.notes
            data_set.allowed_identity_ids = list(command.allowed_identity_ids)
            data_set.available_cultures = list(command.available_cultures)
            data_set.secret_key = command.secret_key
            data_set.webhook_urls = webhook_urls
            self._sync_includes(data_set, included_ids)

            await self.db.flush()
            return data_set

        data_set = await run_in_transaction(self.db, operation, retries=1, resource_type="DataSet")
        self.authorization.invalidate()
        logger.info(f"Saved data set {data_set.name} ({data_set.id}) with {len(data_set.includes)} includes")

        self.notifier.schedule(WebhookTarget.from_data_set(data_set), DATA_SET_SAVED, {"name": data_set.name})
        return data_set

    def _sync_includes(self, data_set: DataSet, included_ids: list[UUID]) -> None:
        position_of = {included_id: position for position, included_id in enumerate(included_ids)}
        for edge in list(data_set.includes):
            if edge.included_data_set_id not in position_of:
                data_set.includes.remove(edge)

        existing = {edge.included_data_set_id: edge for edge in data_set.includes}
        # Edge order is the created_at order, so every edge is restamped by its position
        created_at = utcnow()
        for position, included_id in enumerate(included_ids):
            stamp = created_at + timedelta(microseconds=position)
            edge = existing.get(included_id)
            if edge is None:
                data_set.includes.append(DataSetInclude(included_data_set_id=included_id, created_at=stamp))
            else:
                edge.created_at = stamp
        data_set.includes.sort(key=lambda edge: position_of[edge.included_data_set_id])

    async def delete_data_set(self, data_set_id: UUID) -> bool:
        data_set = await self.queries.get_by_id(data_set_id)
        if data_set is None:
            return False

        target = WebhookTarget.from_data_set(data_set)

        async def operation() -> None:
            await self.db.execute(delete(DataSetInclude).where(DataSetInclude.included_data_set_id == data_set_id))
            await self.db.execute(
                update(Translation).where(Translation.data_set_id == data_set_id).values(data_set_id=None)
            )
            await self.db.delete(data_set)

        await run_in_transaction(self.db, operation, retries=1, resource_type="DataSet")
        self.authorization.invalidate()
        logger.info(f"Deleted data set {data_set_id}")

        self.notifier.schedule(target, DATA_SET_DELETED, {"name": data_set.name})
        return True
