"""
Tests for the filter handler registry and filter activity rules
"""

from sqlalchemy import literal

from datamanager.models import DataSet, Translation
from datamanager.schemas.filters import (
    BaseTranslationFilter,
    CultureNameFilter,
    DataSetIdFilter,
    NotFilledFilter,
    SearchFilter,
    VersionStatusFilter,
)
from datamanager.services.filter_handlers import register_default_handlers
from datamanager.services.filter_registry import FilterHandlerRegistry


async def always_true(_filter):
    return literal(True)


class TestFilterActivity:
    def test_data_set_id_filter(self):
        assert not DataSetIdFilter().is_active()
        assert DataSetIdFilter(value="6f1c0c36-8e9f-4a53-9d43-5f0f4f0f4a11").is_active()

    def test_blank_culture_is_inactive(self):
        assert not CultureNameFilter(value="  ").is_active()
        assert CultureNameFilter(value="en-US").is_active()

    def test_base_translation_filter_is_always_active(self):
        assert BaseTranslationFilter().is_active()

    def test_version_status_active_when_any_flag_given(self):
        assert not VersionStatusFilter().is_active()
        assert VersionStatusFilter(include_old_versions=False).is_active()

    def test_search_filter(self):
        assert not SearchFilter(search_term="").is_active()
        assert SearchFilter(search_term="hello").is_active()

    def test_not_filled_filter(self):
        assert NotFilledFilter().is_active()
        assert not NotFilledFilter(enabled=False).is_active()

    def test_filter_names(self):
        assert CultureNameFilter.name == "Translation.CultureName"
        assert VersionStatusFilter.name == "Translation.VersionStatus"


class TestFilterHandlerRegistry:
    def test_register_and_lookup(self):
        registry = FilterHandlerRegistry()
        registry.register(Translation, CultureNameFilter, always_true)

        assert registry.get(Translation, CultureNameFilter) is always_true
        assert registry.get(DataSet, CultureNameFilter) is None

    def test_decorator_registration(self):
        registry = FilterHandlerRegistry()

        @registry.handles(DataSet, SearchFilter)
        async def search(_filter):
            return literal(True)

        assert registry.handlers_for(DataSet) == {SearchFilter: search}

    def test_cache_is_reset_on_registration(self):
        registry = FilterHandlerRegistry()
        assert registry.handlers_for(Translation) == {}

        registry.register(Translation, SearchFilter, always_true)
        assert SearchFilter in registry.handlers_for(Translation)

    def test_same_filter_resolves_per_entity(self):
        registry = FilterHandlerRegistry()
        register_default_handlers(registry)

        translation_search = registry.get(Translation, SearchFilter)
        data_set_search = registry.get(DataSet, SearchFilter)
        assert translation_search is not None
        assert data_set_search is not None
        assert translation_search is not data_set_search

    def test_default_translation_handlers(self):
        registry = FilterHandlerRegistry()
        register_default_handlers(registry)

        handlers = registry.handlers_for(Translation)
        for filter_type in (DataSetIdFilter, CultureNameFilter, BaseTranslationFilter, VersionStatusFilter, NotFilledFilter):
            assert filter_type in handlers
