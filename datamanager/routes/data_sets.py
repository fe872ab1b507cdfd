"""
Data Set Routes

    GET    /data-sets                              → list (search, ordering, paging)
    GET    /data-sets/accessible                   → data set ids visible to the caller
    GET    /data-sets/{id}                         → one data set
    POST   /data-sets                              → create or update, including include edges
    DELETE /data-sets/{id}                         → delete
    GET    /data-sets/{id}/hierarchy               → resolved hierarchy, precedence order
    GET    /data-sets/{id}/translations/flattened  → de-duplicated translations of the hierarchy
    POST   /data-sets/{id}/materialize             → copy included translations into the data set
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002
from sqlalchemy.orm import selectinload

from datamanager.auth import get_authorization_context
from datamanager.database import get_db
from datamanager.exceptions import DataSetNotFoundError
from datamanager.models import DataSet
from datamanager.schemas.data_set import (
    AccessibleDataSetsResponse,
    DataSetHierarchyResponse,
    DataSetResponse,
    DataSetSummary,
    SaveDataSetCommand,
)
from datamanager.schemas.filters import SearchFilter
from datamanager.schemas.query import OrderingParameters, Page, PaginationParameters
from datamanager.schemas.translation import FlattenedTranslation, MaterializationResult
from datamanager.services.authorization_service import AuthorizationContext
from datamanager.services.data_set_service import DataSetService
from datamanager.services.materialization_service import TranslationHierarchyService
from datamanager.services.query_service import QueryOptions

router = APIRouter(prefix="/data-sets", tags=["Data Sets"])
logger = logging.getLogger(__name__)


@router.get("", response_model=Page[DataSetResponse])
async def list_data_sets(
    search: str | None = Query(None, description="Matches name, description and notes"),
    order_by: str | None = Query(None),
    order_direction: Literal["asc", "desc"] = Query("asc"),
    skip: int = Query(0, ge=0),
    take: int | None = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    options = QueryOptions.with_filters(
        SearchFilter(search_term=search),
        ordering=OrderingParameters(order_by=order_by, order_direction=order_direction),
        pagination=PaginationParameters(skip=skip, take=take),
        includes=[selectinload(DataSet.includes)],
        mapper=DataSetResponse.model_validate,
    )
    return await DataSetService(db, context).list_data_sets(options)


@router.get("/accessible", response_model=AccessibleDataSetsResponse)
async def get_accessible_data_sets(
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    accessible = await DataSetService(db, context).get_accessible_data_set_ids()
    return AccessibleDataSetsResponse(all_accessible=accessible.all_accessible, ids=sorted(accessible.ids, key=str))


@router.get("/{data_set_id}", response_model=DataSetResponse)
async def get_data_set(
    data_set_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await DataSetService(db, context).get_data_set(data_set_id)


@router.post("", response_model=DataSetResponse)
async def save_data_set(
    command: SaveDataSetCommand,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await DataSetService(db, context).save_data_set(command)


@router.delete("/{data_set_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_data_set(
    data_set_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    if not await DataSetService(db, context).delete_data_set(data_set_id):
        raise DataSetNotFoundError(data_set_id)


@router.get("/{data_set_id}/hierarchy", response_model=DataSetHierarchyResponse)
async def get_hierarchy(
    data_set_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    data_sets = await DataSetService(db, context).get_hierarchy(data_set_id)
    if not data_sets:
        raise DataSetNotFoundError(data_set_id)
    return DataSetHierarchyResponse(
        root_id=data_set_id,
        data_sets=[DataSetSummary.model_validate(data_set) for data_set in data_sets],
    )


@router.get("/{data_set_id}/translations/flattened", response_model=list[FlattenedTranslation])
async def get_flattened_translations(
    data_set_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    await DataSetService(db, context).get_data_set(data_set_id)
    return await TranslationHierarchyService(db, context).get_flattened_translations(data_set_id)


@router.post("/{data_set_id}/materialize", response_model=MaterializationResult)
async def materialize(
    data_set_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    await DataSetService(db, context).get_data_set(data_set_id)
    affected = await TranslationHierarchyService(db, context).materialize(data_set_id)
    return MaterializationResult(data_set_id=data_set_id, affected_count=affected)
