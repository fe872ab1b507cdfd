"""
Translation hierarchy service

Flattening: walk a root data set's hierarchy in precedence order and keep
the first current translation seen for each (resource, translation,
culture) key.

Materialization: copy the flattened translations of the included data sets
into the root data set as rows linked back to their source. Rows the root
authored itself always win and are never touched. Running it again with
no upstream changes touches nothing.
"""

import logging
from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datamanager.config import settings
from datamanager.database import utcnow
from datamanager.models import Translation
from datamanager.models.translation import MATERIALIZATION_USER
from datamanager.services.authorization_service import AuthorizationContext
from datamanager.services.data_set_service import DataSetService
from datamanager.services.webhook_service import DATA_SET_MATERIALIZED, WebhookNotifier, WebhookTarget, webhook_notifier

logger = logging.getLogger(__name__)

TranslationKey = tuple[str, str, str | None]

# Copied from the source row on every sync
SYNCED_FIELDS = (
    "content",
    "content_template",
    "internal_group_name1",
    "internal_group_name2",
    "layout_id",
)

FETCH_CHUNK_SIZE = 500


def translation_key_of(translation) -> TranslationKey:
    return (translation.resource_name, translation.translation_name, translation.culture_name)


def _chunks(items: Sequence[UUID], size: int) -> Iterable[Sequence[UUID]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class TranslationHierarchyService:
    def __init__(
        self,
        db: AsyncSession,
        context: AuthorizationContext,
        notifier: WebhookNotifier | None = None,
    ):
        self.db = db
        self.context = context
        self.notifier = notifier or webhook_notifier

    def _current_in(self, data_set_id: UUID):
        return (
            select(Translation)
            .where(Translation.data_set_id == data_set_id, Translation.is_current_version.is_(True))
            .order_by(
                Translation.resource_name,
                Translation.translation_name,
                Translation.culture_name,
                Translation.id,
            )
        )

    # ── Flattening ────────────────────────────────────────────────────────────

    async def get_flattened_translations(self, root_id: UUID) -> list[Translation]:
        """
        De-duplicated current translations under root_id, highest precedence first.

        Reads across every included data set regardless of the caller, so
        the root must already be authorized.
        """
        hierarchy = await DataSetService(self.db, AuthorizationContext.system()).get_hierarchy_ids(root_id)
        if not hierarchy:
            return []

        seen: set[TranslationKey] = set()
        selected: list[UUID] = []
        for data_set_id in hierarchy:
            stmt = self._current_in(data_set_id).with_only_columns(
                Translation.id,
                Translation.resource_name,
                Translation.translation_name,
                Translation.culture_name,
            )
            for translation_id, resource_name, translation_name, culture_name in (await self.db.execute(stmt)).all():
                key = (resource_name, translation_name, culture_name)
                if key in seen:
                    continue
                seen.add(key)
                selected.append(translation_id)

        by_id: dict[UUID, Translation] = {}
        for chunk in _chunks(selected, FETCH_CHUNK_SIZE):
            result = await self.db.scalars(select(Translation).where(Translation.id.in_(chunk)))
            by_id.update((translation.id, translation) for translation in result.all())

        logger.debug(f"Flattened {len(selected)} translations from {len(hierarchy)} data sets under {root_id}")
        return [by_id[translation_id] for translation_id in selected if translation_id in by_id]

    # ── Materialization ───────────────────────────────────────────────────────

    async def materialize(self, root_id: UUID) -> int:
        """
        Pull included translations into root_id.

        Returns:
            Number of rows created or changed. 0 when the root includes
            nothing or everything is already in sync.
        """
        core = DataSetService(self.db, AuthorizationContext.system())
        hierarchy = await core.get_hierarchy_ids(root_id)
        if len(hierarchy) <= 1:
            return 0

        root_rows = (await self.db.scalars(self._current_in(root_id))).all()
        original_keys = {translation_key_of(t) for t in root_rows if not t.is_materialized}
        materialized = {translation_key_of(t): t for t in root_rows if t.is_materialized}

        seen: set[TranslationKey] = set(original_keys)
        sync_time = utcnow()
        batch_size = max(settings.materialization_batch_size, 1)
        affected = 0
        pending = 0

        try:
            for data_set_id in hierarchy[1:]:
                sources = (await self.db.scalars(self._current_in(data_set_id))).all()
                for source in sources:
                    key = translation_key_of(source)
                    if key in seen:
                        logger.debug(f"Skipping {key} from {data_set_id}, already provided")
                        continue
                    seen.add(key)

                    existing = materialized.get(key)
                    if existing is not None:
                        changed = self._sync_from_source(existing, source, sync_time)
                    else:
                        self.db.add(self._copy_of(source, root_id, sync_time))
                        changed = True

                    if changed:
                        affected += 1
                        pending += 1
                    if pending >= batch_size:
                        await self.db.commit()
                        pending = 0

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(f"Materialization of {root_id} failed after {affected} changes")
            raise

        logger.info(f"Materialized {affected} translations into {root_id} from {len(hierarchy) - 1} data sets")

        if affected:
            root = await core.get_data_set(root_id)
            self.notifier.schedule(WebhookTarget.from_data_set(root), DATA_SET_MATERIALIZED, {"affected_count": affected})
        return affected

    def _sync_from_source(self, target: Translation, source: Translation, sync_time) -> bool:
        differs = [name for name in SYNCED_FIELDS if getattr(target, name) != getattr(source, name)]
        if not differs and target.source_translation_id == source.id:
            return False

        if "content" in differs or "content_template" in differs:
            target.content_updated_at = sync_time
        for name in SYNCED_FIELDS:
            setattr(target, name, getattr(source, name))
        target.source_translation_id = source.id
        target.source_translation_last_synced_at = sync_time
        target.updated_at = sync_time
        return True

    def _copy_of(self, source: Translation, root_id: UUID, sync_time) -> Translation:
        copy = Translation(
            resource_name=source.resource_name,
            translation_name=source.translation_name,
            culture_name=source.culture_name,
            data_set_id=root_id,
            source_translation_id=source.id,
            source_translation_last_synced_at=sync_time,
            content_updated_at=sync_time,
            source_id=None,
            is_current_version=True,
            is_draft_version=False,
            is_old_version=False,
            created_by=MATERIALIZATION_USER,
        )
        for name in SYNCED_FIELDS:
            setattr(copy, name, getattr(source, name))
        copy.refresh_translation_key()
        return copy
