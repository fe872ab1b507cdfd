"""
Translation Routes

translations_router  (prefix: /translations)
    POST   /query               → filtered, ordered, paged list
    GET    /{id}                → one translation (any version)
    GET    /{id}/related        → the translation plus its other cultures
    POST   /                    → save one key in several cultures
    PATCH  /single              → partial save of one row
    DELETE /{id}                → delete one row
    POST   /index               → assign group names
    POST   /remove-duplicates   → drop rows already present in a base data set

cultures_router
    GET    /cultures            → available cultures, optionally for one data set
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from datamanager.auth import get_authorization_context
from datamanager.database import get_db
from datamanager.exceptions import TranslationNotFoundError
from datamanager.schemas.query import Page, QueryRequest
from datamanager.schemas.translation import (
    CultureListResponse,
    IndexTranslationsCommand,
    IndexTranslationsResult,
    RemoveDuplicateTranslationsCommand,
    RemoveDuplicateTranslationsResult,
    SaveSingleTranslationCommand,
    SaveSingleTranslationResult,
    SaveTranslationCommand,
    SaveTranslationResult,
    TranslationResponse,
    TranslationWithRelatedResponse,
)
from datamanager.services.authorization_service import AuthorizationContext
from datamanager.services.culture_service import get_available_cultures
from datamanager.services.maintenance_service import TranslationMaintenanceService
from datamanager.services.query_service import QueryOptions
from datamanager.services.translation_service import TranslationService

translations_router = APIRouter(prefix="/translations", tags=["Translations"])
cultures_router = APIRouter(tags=["Cultures"])
logger = logging.getLogger(__name__)


@translations_router.post("/query", response_model=Page[TranslationResponse])
async def query_translations(
    request: QueryRequest,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    options = QueryOptions(
        filtering=request.filtering,
        ordering=request.ordering,
        pagination=request.pagination,
        mapper=TranslationResponse.model_validate,
    )
    return await TranslationService(db, context).list_translations(options)


@translations_router.get("/{translation_id}", response_model=TranslationResponse)
async def get_translation(
    translation_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await TranslationService(db, context).get_translation(translation_id)


@translations_router.get("/{translation_id}/related", response_model=TranslationWithRelatedResponse)
async def get_translation_with_related(
    translation_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    translation, related = await TranslationService(db, context).get_translation_with_related(translation_id)
    return TranslationWithRelatedResponse(
        translation=TranslationResponse.model_validate(translation),
        related=[TranslationResponse.model_validate(row) for row in related],
    )


@translations_router.post("", response_model=SaveTranslationResult)
async def save_translation(
    command: SaveTranslationCommand,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await TranslationService(db, context).save_translation(command)


@translations_router.patch("/single", response_model=SaveSingleTranslationResult)
async def save_single_translation(
    command: SaveSingleTranslationCommand,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    translation_id = await TranslationService(db, context).save_single_translation(command)
    return SaveSingleTranslationResult(id=translation_id)


@translations_router.delete("/{translation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_translation(
    translation_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    if not await TranslationService(db, context).delete_translation(translation_id):
        raise TranslationNotFoundError(translation_id)


@translations_router.post("/index", response_model=IndexTranslationsResult)
async def index_translations(
    command: IndexTranslationsCommand,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await TranslationMaintenanceService(db, context).index_translations(command)


@translations_router.post("/remove-duplicates", response_model=RemoveDuplicateTranslationsResult)
async def remove_duplicate_translations(
    command: RemoveDuplicateTranslationsCommand,
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await TranslationMaintenanceService(db, context).remove_duplicate_translations(command)


@cultures_router.get("/cultures", response_model=CultureListResponse)
async def list_cultures(
    data_set_id: UUID | None = Query(None, description="Limit to the cultures of one data set"),
    db: AsyncSession = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return CultureListResponse(cultures=await get_available_cultures(db, context, data_set_id))
