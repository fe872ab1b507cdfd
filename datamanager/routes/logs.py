"""
Log Routes (prefix: /logs)

    GET    /logs        → operation log, newest first unless ordered otherwise
    GET    /logs/{id}   → one log entry

Only root identities see log entries; everyone else gets an empty list
and 404 for single entries.
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from datamanager.auth import get_authorization_context
from datamanager.database import get_db
from datamanager.schemas.filters import DataSetIdFilter, LogStatusFilter, LogTypeFilter, SearchFilter
from datamanager.schemas.log import LogResponse
from datamanager.schemas.query import OrderingParameters, Page, PaginationParameters
from datamanager.services.authorization_service import AuthorizationContext, AuthorizationService
from datamanager.services.log_query_service import LogQueryService
from datamanager.services.query_service import QueryOptions

router = APIRouter(prefix="/logs", tags=["Logs"])
logger = logging.getLogger(__name__)


def get_log_queries(
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
) -> LogQueryService:
    return LogQueryService(db, AuthorizationService(db, context))


@router.get("", response_model=Page[LogResponse])
async def list_logs(
    log_type: str | None = Query(None, description="e.g. Webhook"),
    status: str | None = Query(None, description="Started, Success or Failed"),
    data_set_id: UUID | None = Query(None),
    search: str | None = Query(None, description="Matches target, error message and details"),
    order_by: str | None = Query(None),
    order_direction: Literal["asc", "desc"] = Query("desc"),
    skip: int = Query(0, ge=0),
    take: int | None = Query(None, ge=1, le=1000),
    queries: LogQueryService = Depends(get_log_queries),
):
    options = QueryOptions.with_filters(
        LogTypeFilter(value=log_type),
        LogStatusFilter(value=status),
        DataSetIdFilter(value=data_set_id),
        SearchFilter(search_term=search),
        ordering=OrderingParameters(order_by=order_by, order_direction=order_direction),
        pagination=PaginationParameters(skip=skip, take=take),
        mapper=LogResponse.model_validate,
    )
    return await queries.get_logs(options)


@router.get("/{log_id}", response_model=LogResponse)
async def get_log(log_id: UUID, queries: LogQueryService = Depends(get_log_queries)):
    return await queries.get_log(log_id)
