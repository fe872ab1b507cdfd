"""
Translation Service

Reads, saves and deletes translation rows. Saving a single row goes
through the version state machine:

    current ──edit (content changes)──▶ current   + old snapshot of the previous state
    current ──edit (is_draft=True)────▶ draft     (no snapshot)
    draft   ──edit────────────────────▶ draft     (no snapshot)
    draft   ──edit (is_draft=False)───▶ current   (no snapshot)

A caller timestamp older than the stored content timestamp is a stale
write: it is logged and ignored, and the existing id is returned.
"""

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datamanager.database import as_utc, run_in_transaction, utcnow
from datamanager.exceptions import DataSetNotFoundError, TranslationNotFoundError, ValidationError
from datamanager.models import DataSet, Translation
from datamanager.models.translation import build_translation_key
from datamanager.schemas.filters import VersionStatusFilter
from datamanager.schemas.query import OrderingParameters, Page
from datamanager.schemas.translation import (
    SaveSingleTranslationCommand,
    SaveTranslationCommand,
    SaveTranslationResult,
)
from datamanager.services.authorization_service import AuthorizationContext, AuthorizationService
from datamanager.services.query_service import QueryOptions
from datamanager.services.translation_query_service import TranslationQueryService
from datamanager.services.webhook_service import TRANSLATION_UPDATED, WebhookNotifier, WebhookTarget, webhook_notifier
from datamanager.utils.patch import Patch

logger = logging.getLogger(__name__)

# Fields a save command copies onto the row when specified
PATCHABLE_FIELDS = (
    "internal_group_name1",
    "internal_group_name2",
    "resource_name",
    "translation_name",
    "culture_name",
    "content",
    "content_template",
    "data_set_id",
    "layout_id",
    "source_id",
    "source_translation_id",
    "source_translation_last_synced_at",
)

# Columns that may be specified but never cleared
NON_NULLABLE_FIELDS = ("resource_name", "translation_name", "content")

REQUIRED_ON_CREATE = ("resource_name", "translation_name", "culture_name", "data_set_id", "content")

# Copied verbatim into history snapshots
SNAPSHOT_FIELDS = PATCHABLE_FIELDS + ("content_updated_at", "created_at", "created_by", "updated_by")

ANY_VERSION = VersionStatusFilter(
    include_current_versions=True,
    include_draft_versions=True,
    include_old_versions=True,
)
EDITABLE_VERSIONS = VersionStatusFilter(include_current_versions=True, include_draft_versions=True)


def should_snapshot(content_changed: bool, target_is_draft: bool, current_is_draft: bool) -> bool:
    """A history entry is kept only when published content is replaced by new published content."""
    return content_changed and not target_is_draft and not current_is_draft


def _specified_value(patch: Patch):
    return patch.get_or_default(None)


class TranslationService:
    def __init__(
        self,
        db: AsyncSession,
        context: AuthorizationContext,
        notifier: WebhookNotifier | None = None,
    ):
        self.db = db
        self.context = context
        self.authorization = AuthorizationService(db, context)
        self.queries = TranslationQueryService(db, self.authorization)
        self.notifier = notifier or webhook_notifier

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def list_translations(self, options: QueryOptions | None = None) -> Page:
        return await self.queries.get_page(options)

    async def get_translation(self, translation_id: UUID) -> Translation:
        translation = await self.queries.get_by_id(translation_id, QueryOptions.with_filters(ANY_VERSION))
        if translation is None:
            raise TranslationNotFoundError(translation_id)
        return translation

    async def get_translation_with_related(self, translation_id: UUID) -> tuple[Translation, list[Translation]]:
        """The translation plus every current culture of the same key in the same data set."""
        translation = await self.get_translation(translation_id)
        query = select(Translation).where(
            Translation.translation_key == translation.translation_key,
            Translation.data_set_id == translation.data_set_id,
        )
        prepared = await self.queries.prepare_query(
            query, QueryOptions(ordering=OrderingParameters(order_by="culture_name"))
        )
        related = await self.queries.fetch(prepared)
        return translation, related

    # ── Single save ───────────────────────────────────────────────────────────

    async def save_single_translation(self, command: SaveSingleTranslationCommand) -> UUID:
        return await run_in_transaction(
            self.db,
            lambda: self._save_single(command),
            resource_type="Translation",
        )

    async def _find_existing(self, command: SaveSingleTranslationCommand) -> Translation | None:
        translation_id = _specified_value(command.id)
        if translation_id is not None:
            translation = await self.queries.find_local(
                lambda t: t.id == translation_id and not t.is_old_version
            )
            if translation is None:
                translation = await self.queries.get_by_id(translation_id, QueryOptions.with_filters(EDITABLE_VERSIONS))
            if translation is None:
                raise TranslationNotFoundError(translation_id)
            return translation

        resource_name = _specified_value(command.resource_name)
        translation_name = _specified_value(command.translation_name)
        data_set_id = _specified_value(command.data_set_id)
        if resource_name is None or translation_name is None or data_set_id is None or not command.culture_name.is_specified:
            return None
        culture_name = command.culture_name.value

        translation = await self.queries.find_local(
            lambda t: t.is_current_version
            and t.resource_name == resource_name
            and t.translation_name == translation_name
            and t.culture_name == culture_name
            and t.data_set_id == data_set_id
        )
        if translation is not None:
            return translation

        culture_clause = (
            Translation.culture_name.is_(None) if culture_name is None else Translation.culture_name == culture_name
        )
        query = select(Translation).where(
            Translation.resource_name == resource_name,
            Translation.translation_name == translation_name,
            culture_clause,
            Translation.data_set_id == data_set_id,
        )
        return await self.queries.first(query)

    async def _ensure_data_set(self, data_set_id: UUID) -> None:
        if not await self.authorization.can_access_data_set(data_set_id):
            raise DataSetNotFoundError(data_set_id)
        if await self.db.get(DataSet, data_set_id) is None:
            raise DataSetNotFoundError(data_set_id)

    async def _save_single(self, command: SaveSingleTranslationCommand) -> UUID:
        for name in NON_NULLABLE_FIELDS:
            if getattr(command, name).is_null:
                raise ValidationError(f"{name} cannot be null", field=name)

        requested_at = as_utc(_specified_value(command.content_updated_at))
        translation = await self._find_existing(command)

        if translation is None:
            return await self._create(command, requested_at)
        return await self._update(translation, command, requested_at)

    async def _update(
        self,
        translation: Translation,
        command: SaveSingleTranslationCommand,
        requested_at: datetime | None,
    ) -> UUID:
        stored_at = as_utc(translation.content_updated_at)
        if requested_at is not None and stored_at is not None and requested_at < stored_at:
            logger.warning(
                f"Ignoring stale write to translation {translation.id}: "
                f"request content time {requested_at.isoformat()} is older than stored {stored_at.isoformat()}"
            )
            return translation.id

        new_data_set_id = _specified_value(command.data_set_id)
        if command.data_set_id.is_specified and new_data_set_id != translation.data_set_id:
            if new_data_set_id is None:
                raise ValidationError("data_set_id cannot be cleared", field="data_set_id")
            await self._ensure_data_set(new_data_set_id)

        content_changed = (
            command.content.is_specified and command.content.value != translation.content
        ) or (
            command.content_template.is_specified and command.content_template.value != translation.content_template
        )
        requested_draft = _specified_value(command.is_draft_version)
        target_is_draft = requested_draft if requested_draft is not None else translation.is_draft_version

        if should_snapshot(content_changed, target_is_draft, translation.is_draft_version):
            self.db.add(self._snapshot_of(translation))

        for name in PATCHABLE_FIELDS:
            setattr(translation, name, getattr(command, name).get_or_default(getattr(translation, name)))

        if content_changed:
            translation.content_updated_at = requested_at or utcnow()
        elif requested_at is not None:
            # External sync may force the timestamp without new content
            translation.content_updated_at = requested_at

        if requested_draft is not None:
            if requested_draft:
                translation.set_version_state(current=False, draft=True, old=False)
            else:
                translation.set_version_state(current=True, draft=False, old=False)

        translation.updated_by = self.context.user_name
        translation.refresh_translation_key()
        await self.db.flush()

        logger.debug(f"Updated translation {translation.id} (content changed: {content_changed})")
        return translation.id

    def _snapshot_of(self, translation: Translation) -> Translation:
        snapshot = Translation(id=uuid.uuid4(), original_translation_id=translation.id)
        for name in SNAPSHOT_FIELDS:
            setattr(snapshot, name, getattr(translation, name))
        snapshot.set_version_state(current=False, draft=False, old=True)
        snapshot.translation_key = build_translation_key(translation.resource_name, translation.translation_name)
        return snapshot

    async def _create(self, command: SaveSingleTranslationCommand, requested_at: datetime | None) -> UUID:
        for name in REQUIRED_ON_CREATE:
            value = _specified_value(getattr(command, name))
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"{name} is required to create a translation", field=name)

        await self._ensure_data_set(command.data_set_id.value)

        is_draft = bool(_specified_value(command.is_draft_version))
        translation = Translation(
            id=uuid.uuid4(),
            content_updated_at=requested_at or utcnow(),
            created_by=self.context.user_name,
            updated_by=self.context.user_name,
        )
        for name in PATCHABLE_FIELDS:
            setattr(translation, name, _specified_value(getattr(command, name)))
        translation.set_version_state(current=not is_draft, draft=is_draft, old=False)
        translation.refresh_translation_key()

        self.db.add(translation)
        await self.db.flush()

        logger.debug(f"Created translation {translation.id} ({translation.translation_key})")
        return translation.id

    # ── Multi-culture save ────────────────────────────────────────────────────

    async def save_translation(self, command: SaveTranslationCommand) -> SaveTranslationResult:
        """Publish one key in every culture of the command."""
        if command.id is not None:
            existing = await self.get_translation(command.id)
            resource_name = existing.resource_name
            translation_name = existing.translation_name
            data_set_id = existing.data_set_id
        else:
            if not (command.resource_name and command.resource_name.strip()):
                raise ValidationError("resource_name is required when creating translations", field="resource_name")
            if not (command.translation_name and command.translation_name.strip()):
                raise ValidationError("translation_name is required when creating translations", field="translation_name")
            resource_name = command.resource_name
            translation_name = command.translation_name
            data_set_id = command.data_set_id

        if data_set_id is None:
            raise ValidationError("data_set_id must be provided directly or through an existing translation", field="data_set_id")
        await self._ensure_data_set(data_set_id)
        data_set = await self.db.get(DataSet, data_set_id)
        target = WebhookTarget.from_data_set(data_set)

        async def operation() -> dict[str, UUID]:
            saved: dict[str, UUID] = {}
            for culture_name, content in command.translations.items():
                fields = {
                    "resource_name": resource_name,
                    "translation_name": translation_name,
                    "culture_name": culture_name,
                    "data_set_id": data_set_id,
                    "content": content,
                    "is_draft_version": False,
                }
                if command.internal_group_name1 is not None:
                    fields["internal_group_name1"] = command.internal_group_name1
                if command.internal_group_name2 is not None:
                    fields["internal_group_name2"] = command.internal_group_name2
                single = SaveSingleTranslationCommand.model_validate(fields)
                saved[culture_name] = await self._save_single(single)
            return saved

        saved = await run_in_transaction(self.db, operation, resource_type="Translation")
        logger.info(f"Saved {build_translation_key(resource_name, translation_name)} in {len(saved)} cultures")

        self.notifier.schedule(
            target,
            TRANSLATION_UPDATED,
            {
                "resourceName": resource_name,
                "translationName": translation_name,
                "cultures": list(command.translations.keys()),
            },
        )
        first_id = next(iter(saved.values()), None)
        return SaveTranslationResult(id=command.id or first_id, translation_ids=saved)

    # ── Delete ────────────────────────────────────────────────────────────────

    async def delete_translation(self, translation_id: UUID) -> bool:
        translation = await self.queries.get_by_id(translation_id, QueryOptions.with_filters(ANY_VERSION))
        if translation is None:
            return False

        async def operation() -> None:
            await self.db.delete(translation)

        await run_in_transaction(self.db, operation, retries=1, resource_type="Translation")
        logger.info(f"Deleted translation {translation_id}")
        return True
