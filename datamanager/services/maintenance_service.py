"""
Maintenance sweeps over translations.

Both sweeps page through current translations in id order, in batches of
settings.sweep_batch_size, committing and clearing the session after each
batch. They are safe to re-run. Problems are reported in the result's
errors list instead of being raised. A batch that fails to commit is
rolled back and recorded, and the sweep carries on with the next batch.
"""

import logging
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from datamanager.config import settings
from datamanager.models import DataSet, Translation
from datamanager.schemas.translation import (
    IndexTranslationsCommand,
    IndexTranslationsResult,
    RemoveDuplicateTranslationsCommand,
    RemoveDuplicateTranslationsResult,
)
from datamanager.services.authorization_service import AuthorizationContext, AuthorizationService
from datamanager.services.translation_query_service import TranslationQueryService

logger = logging.getLogger(__name__)

EMAIL_PREFIX = "email."
EMAIL_GROUP = "Email"
EMAIL_LAYOUT_GROUP = "EmailLayout"


def index_groups(translation_name: str | None) -> tuple[str | None, str | None]:
    """Group names implied by a translation name; None leaves a group unchanged."""
    if not translation_name or not translation_name.lower().startswith(EMAIL_PREFIX):
        return None, None
    if "layout" in translation_name.lower():
        return EMAIL_GROUP, EMAIL_LAYOUT_GROUP
    return EMAIL_GROUP, None


class TranslationMaintenanceService:
    def __init__(self, db: AsyncSession, context: AuthorizationContext, batch_size: int | None = None):
        self.db = db
        self.context = context
        self.authorization = AuthorizationService(db, context)
        self.queries = TranslationQueryService(db, self.authorization)
        self.batch_size = batch_size or settings.sweep_batch_size

    async def _batch_query(self, data_set_id: UUID | None, skip: int):
        prepared = await self.queries.prepare_query()
        stmt = prepared.statement.order_by(None).order_by(Translation.id)
        if data_set_id is not None:
            stmt = stmt.where(Translation.data_set_id == data_set_id)
        return stmt.offset(skip).limit(self.batch_size)

    async def _has_data_set(self, data_set_id: UUID) -> bool:
        return await self.authorization.can_access_data_set(data_set_id) and (
            await self.db.get(DataSet, data_set_id) is not None
        )

    async def _fetch_batch(self, stmt, result, description: str, skip: int, scalars: bool = False):
        """One page of the sweep, or None when it cannot be read and the sweep must stop."""
        try:
            if scalars:
                return (await self.db.scalars(stmt)).all()
            return (await self.db.execute(stmt)).all()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"{description} failed to read batch at offset {skip}")
            result.errors.append(f"Unexpected error: {e}")
            return None

    async def _discard_batch(self, result, description: str, skip: int, error: SQLAlchemyError) -> None:
        await self.db.rollback()
        self.db.expunge_all()
        logger.exception(f"{description} failed for batch at offset {skip}, continuing")
        result.errors.append(f"Batch at offset {skip} failed: {error}")

    # ── Index ─────────────────────────────────────────────────────────────────

    async def index_translations(self, command: IndexTranslationsCommand) -> IndexTranslationsResult:
        """Assign e-mail group names to translations whose name starts with "Email."."""
        result = IndexTranslationsResult()

        if command.data_set_id is not None and not await self._has_data_set(command.data_set_id):
            result.errors.append(f"DataSet with ID {command.data_set_id} not found or not accessible.")
            return result

        skip = 0
        while True:
            stmt = await self._batch_query(command.data_set_id, skip)
            batch = await self._fetch_batch(stmt, result, "Indexing translations", skip, scalars=True)
            if not batch:
                break

            try:
                batch_updated = 0
                for translation in batch:
                    group1, group2 = index_groups(translation.translation_name)
                    changed = False
                    if group1 is not None and translation.internal_group_name1 != group1:
                        translation.internal_group_name1 = group1
                        changed = True
                    if group2 is not None and translation.internal_group_name2 != group2:
                        translation.internal_group_name2 = group2
                        changed = True
                    if changed:
                        batch_updated += 1

                await self.db.commit()
                self.db.expunge_all()
            except SQLAlchemyError as e:
                await self._discard_batch(result, "Indexing translations", skip, e)
            else:
                result.processed_count += len(batch)
                result.updated_count += batch_updated
                logger.info(f"Indexed batch at {skip}: {len(batch)} translations, {batch_updated} updated")

            skip += len(batch)
            if len(batch) < self.batch_size:
                break

        logger.info(f"Indexing done. Processed: {result.processed_count}, updated: {result.updated_count}")
        return result

    # ── Remove duplicates ─────────────────────────────────────────────────────

    async def remove_duplicate_translations(
        self, command: RemoveDuplicateTranslationsCommand
    ) -> RemoveDuplicateTranslationsResult:
        """Delete rows of the specific data set whose key, culture and content equal a row of the base data set."""
        result = RemoveDuplicateTranslationsResult()

        if not await self._has_data_set(command.specific_data_set_id):
            result.errors.append(f"Specific DataSet with ID {command.specific_data_set_id} not found or not accessible.")
            return result
        if not await self._has_data_set(command.base_data_set_id):
            result.errors.append(f"Base DataSet with ID {command.base_data_set_id} not found or not accessible.")
            return result

        skip = 0
        while True:
            stmt = (await self._batch_query(command.specific_data_set_id, skip)).with_only_columns(
                Translation.id,
                Translation.translation_key,
                Translation.culture_name,
                Translation.content,
            )
            batch = await self._fetch_batch(stmt, result, "Removing duplicate translations", skip)
            if not batch:
                break

            try:
                base_stmt = (await self.queries.prepare_query()).statement.order_by(None).where(
                    Translation.data_set_id == command.base_data_set_id,
                    Translation.translation_key.in_(list({row.translation_key for row in batch})),
                )
                base_keys = {
                    (row.translation_key, row.culture_name, row.content)
                    for row in (
                        await self.db.execute(
                            base_stmt.with_only_columns(
                                Translation.translation_key,
                                Translation.culture_name,
                                Translation.content,
                            )
                        )
                    ).all()
                }

                duplicate_ids = [
                    row.id for row in batch if (row.translation_key, row.culture_name, row.content) in base_keys
                ]
                if duplicate_ids:
                    await self.db.execute(delete(Translation).where(Translation.id.in_(duplicate_ids)))
                await self.db.commit()
                self.db.expunge_all()
            except SQLAlchemyError as e:
                await self._discard_batch(result, "Removing duplicate translations", skip, e)
                # Nothing was deleted, the whole batch still occupies its positions
                skip += len(batch)
            else:
                result.processed_count += len(batch)
                result.removed_count += len(duplicate_ids)
                if duplicate_ids:
                    logger.info(f"Removed {len(duplicate_ids)} duplicate translations from batch at {skip}")

                # Deleted rows no longer occupy positions, only the kept ones are skipped
                skip += len(batch) - len(duplicate_ids)

            if len(batch) < self.batch_size:
                break

        logger.info(
            f"Duplicate removal done. Processed: {result.processed_count}, removed: {result.removed_count}"
        )
        return result
