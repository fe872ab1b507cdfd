"""
Tests for query composition: authorization, filters, ordering and paging
"""

import uuid

from sqlalchemy import inspect, select
from sqlalchemy.orm import selectinload

from datamanager.models import Translation
from datamanager.schemas.filters import (
    BaseTranslationFilter,
    CultureNameFilter,
    DataSetIdFilter,
    NotFilledFilter,
    SearchFilter,
    VersionStatusFilter,
)
from datamanager.schemas.query import OrderingParameters, PaginationParameters
from datamanager.services.authorization_service import AuthorizationContext, AuthorizationService
from datamanager.services.data_set_service import DataSetQueryService
from datamanager.services.query_service import QueryOptions
from datamanager.services.translation_query_service import TranslationQueryService
from utils.mock_utils import create_test_data_set, create_test_translation


def translation_queries(db, context):
    return TranslationQueryService(db, AuthorizationService(db, context))


async def create_versions(db, data_set):
    """One current, one draft and one old row for the same key"""
    current = await create_test_translation(db, data_set, "Common", "Save", "en-US", "Save")
    draft = await create_test_translation(
        db, data_set, "Common", "Save", "en-US", "Save now",
        is_current_version=False, is_draft_version=True,
    )
    old = await create_test_translation(
        db, data_set, "Common", "Save", "en-US", "Store",
        is_current_version=False, is_old_version=True,
    )
    return current, draft, old


class TestVersionDefault:
    async def test_only_current_versions_by_default(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        current, _, _ = await create_versions(test_db, data_set)

        page = await translation_queries(test_db, system_context).get_page()

        assert [t.id for t in page.items] == [current.id]
        assert page.total_count == 1

    async def test_inactive_version_filter_still_disables_default(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_versions(test_db, data_set)

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(VersionStatusFilter())
        )

        assert page.total_count == 3

    async def test_select_drafts_and_old(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        _, draft, old = await create_versions(test_db, data_set)

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(VersionStatusFilter(include_draft_versions=True, include_old_versions=True))
        )

        assert {t.id for t in page.items} == {draft.id, old.id}

    async def test_version_filter_without_true_flags_matches_nothing(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_versions(test_db, data_set)

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(VersionStatusFilter(include_current_versions=False))
        )

        assert page.total_count == 0
        assert page.items == []


class TestAuthorization:
    async def test_gated_caller_sees_public_and_allowed(self, test_db):
        public = await create_test_data_set(test_db, "public")
        mine = await create_test_data_set(test_db, "mine", allowed_identity_ids=["alice"])
        await create_test_data_set(test_db, "theirs", allowed_identity_ids=["bob"])

        queries = DataSetQueryService(test_db, AuthorizationService(test_db, AuthorizationContext(identity_id="alice")))
        page = await queries.get_page()

        assert {d.id for d in page.items} == {public.id, mine.id}

    async def test_no_accessible_data_sets_means_no_rows(self, test_db):
        private = await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])
        await create_test_translation(test_db, private, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, AuthorizationContext(identity_id="alice")).get_page()

        assert page.total_count == 0

    async def test_translations_without_data_set_hidden_from_gated_callers(self, test_db, system_context):
        await create_test_data_set(test_db, "public")
        orphan = await create_test_translation(test_db, None, "Common", "Save", "en-US", "Save")

        gated = await translation_queries(test_db, AuthorizationContext(identity_id="alice")).get_page()
        unchecked = await translation_queries(test_db, system_context).get_page()

        assert gated.total_count == 0
        assert [t.id for t in unchecked.items] == [orphan.id]

    async def test_filters_cannot_widen_access(self, test_db):
        private = await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])
        await create_test_translation(test_db, private, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, AuthorizationContext(identity_id="alice")).get_page(
            QueryOptions.with_filters(DataSetIdFilter(value=private.id), VersionStatusFilter(include_current_versions=True))
        )

        assert page.total_count == 0

    async def test_root_sees_everything(self, test_db):
        await create_test_data_set(test_db, "a", allowed_identity_ids=["bob"])
        await create_test_data_set(test_db, "b", allowed_identity_ids=["carol"])

        queries = DataSetQueryService(
            test_db, AuthorizationService(test_db, AuthorizationContext(identity_id="alice", is_root=True))
        )
        page = await queries.get_page()

        assert page.total_count == 2


class TestFilters:
    async def test_culture_and_data_set_filters(self, test_db, system_context):
        first = await create_test_data_set(test_db, "first")
        second = await create_test_data_set(test_db, "second")
        wanted = await create_test_translation(test_db, first, "Common", "Save", "de-DE", "Speichern")
        await create_test_translation(test_db, first, "Common", "Save", "en-US", "Save")
        await create_test_translation(test_db, second, "Common", "Save", "de-DE", "Sichern")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(DataSetIdFilter(value=first.id), CultureNameFilter(value="de-DE"))
        )

        assert [t.id for t in page.items] == [wanted.id]

    async def test_inactive_filters_are_ignored(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(CultureNameFilter(value=""), SearchFilter(search_term="  "), DataSetIdFilter())
        )

        assert page.total_count == 1

    async def test_search_is_case_insensitive(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        hit = await create_test_translation(test_db, data_set, "Checkout", "Pay", "en-US", "Pay Now")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(SearchFilter(search_term="pay now"))
        )

        assert [t.id for t in page.items] == [hit.id]

    async def test_search_escapes_wildcards(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(SearchFilter(search_term="%"))
        )

        assert page.total_count == 0

    async def test_not_filled(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        placeholder = await create_test_translation(test_db, data_set, "Common", "Cancel", "en-US", "Cancel")
        await create_test_translation(test_db, data_set, "Common", "Save", "de-DE", "Speichern")

        page = await translation_queries(test_db, system_context).get_page(QueryOptions.with_filters(NotFilledFilter()))

        assert [t.id for t in page.items] == [placeholder.id]

    async def test_base_translation_filter(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        neutral = await create_test_translation(test_db, data_set, "Common", "Save", None, "Save")
        english = await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")
        await create_test_translation(test_db, data_set, "Common", "Save", "de-DE", "Speichern")
        await create_test_translation(test_db, data_set, "Common", "Open", "en-US", "Open", source_id=english.id)

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions.with_filters(BaseTranslationFilter(culture_name="en-US"))
        )

        assert {t.id for t in page.items} == {neutral.id, english.id}


class TestOrderingAndPaging:
    async def test_default_order_is_key_then_culture(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        b = await create_test_translation(test_db, data_set, "Common", "B", "en-US", "b")
        a_en = await create_test_translation(test_db, data_set, "Common", "A", "en-US", "a")
        a_de = await create_test_translation(test_db, data_set, "Common", "A", "de-DE", "a")

        page = await translation_queries(test_db, system_context).get_page()

        assert [t.id for t in page.items] == [a_de.id, a_en.id, b.id]

    async def test_unknown_order_field_uses_default(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        b = await create_test_translation(test_db, data_set, "Common", "B", "en-US", "b")
        a = await create_test_translation(test_db, data_set, "Common", "A", "en-US", "a")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions(ordering=OrderingParameters(order_by="no_such_column"))
        )

        assert [t.id for t in page.items] == [a.id, b.id]

    async def test_descending_order(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        first = await create_test_translation(test_db, data_set, "Common", "A", "en-US", "aaa")
        second = await create_test_translation(test_db, data_set, "Common", "B", "en-US", "zzz")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions(ordering=OrderingParameters(order_by="content", order_direction="desc"))
        )

        assert [t.id for t in page.items] == [second.id, first.id]

    async def test_paging_keeps_total_count(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        for name in ("A", "B", "C", "D", "E"):
            await create_test_translation(test_db, data_set, "Common", name, "en-US", name.lower())

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions(pagination=PaginationParameters.page(2, 2))
        )

        assert page.total_count == 5
        assert page.skip == 2
        assert page.take == 2
        assert [t.translation_name for t in page.items] == ["C", "D"]

    async def test_projection_and_mapper(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions(
                selector=[Translation.translation_key, Translation.culture_name],
                mapper=lambda row: f"{row.translation_key}/{row.culture_name}",
            )
        )

        assert page.items == ["Common_Save/en-US"]


class TestLookups:
    async def test_first_respects_authorization(self, test_db):
        private = await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])
        translation = await create_test_translation(test_db, private, "Common", "Save", "en-US", "Save")

        alice = translation_queries(test_db, AuthorizationContext(identity_id="alice"))
        bob = translation_queries(test_db, AuthorizationContext(identity_id="bob"))
        query = select(Translation).where(Translation.id == translation.id)

        assert await alice.first(query) is None
        assert (await bob.first(query)).id == translation.id

    async def test_get_by_id_missing(self, test_db, system_context):
        assert await translation_queries(test_db, system_context).get_by_id(uuid.uuid4()) is None

    async def test_find_local_sees_unflushed_rows(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        pending = Translation(
            id=uuid.uuid4(),
            resource_name="Common",
            translation_name="Save",
            culture_name="en-US",
            content="Save",
            data_set_id=data_set.id,
        )
        test_db.add(pending)

        found = await translation_queries(test_db, system_context).find_local(lambda t: t.translation_name == "Save")

        assert found is pending

    async def test_find_local_respects_authorization(self, test_db):
        private = await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])
        await create_test_translation(test_db, private, "Common", "Save", "en-US", "Save")

        found = await translation_queries(test_db, AuthorizationContext(identity_id="alice")).find_local(
            lambda t: True
        )

        assert found is None


class TestIncludes:
    async def test_loader_options_are_applied(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")
        test_db.expunge_all()

        page = await translation_queries(test_db, system_context).get_page(
            QueryOptions(includes=[selectinload(Translation.data_set)])
        )

        (translation,) = page.items
        assert "data_set" not in inspect(translation).unloaded
        assert translation.data_set.name == "app"

    async def test_without_loader_options_relationship_stays_unloaded(self, test_db, system_context):
        data_set = await create_test_data_set(test_db, "app")
        await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")
        test_db.expunge_all()

        page = await translation_queries(test_db, system_context).get_page()

        assert "data_set" in inspect(page.items[0]).unloaded
