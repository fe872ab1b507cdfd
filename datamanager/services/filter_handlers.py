"""SQL predicates for the query filters, per entity."""

from sqlalchemy import and_, false, func, or_
from sqlalchemy.sql.elements import ColumnElement

from datamanager.models import DataSet, Log, Translation
from datamanager.schemas.filters import (
    BaseTranslationFilter,
    CultureNameFilter,
    DataSetIdFilter,
    InternalGroupName1Filter,
    LogStatusFilter,
    LogTypeFilter,
    NotFilledFilter,
    ResourceNameFilter,
    SearchFilter,
    VersionStatusFilter,
)
from datamanager.services.filter_registry import FilterHandlerRegistry, filter_registry


def _contains_ci(column, term: str) -> ColumnElement[bool]:
    return func.lower(column).contains(term.strip().lower(), autoescape=True)


# ── Translation ───────────────────────────────────────────────────────────────


async def translation_data_set_id(f: DataSetIdFilter) -> ColumnElement[bool]:
    return Translation.data_set_id == f.value


async def translation_culture_name(f: CultureNameFilter) -> ColumnElement[bool]:
    return Translation.culture_name == f.value


async def translation_resource_name(f: ResourceNameFilter) -> ColumnElement[bool]:
    return Translation.resource_name == f.value


async def translation_internal_group_name1(f: InternalGroupName1Filter) -> ColumnElement[bool]:
    return Translation.internal_group_name1 == f.value


async def translation_base(f: BaseTranslationFilter) -> ColumnElement[bool]:
    culture_match = Translation.culture_name.is_(None)
    if f.culture_name:
        culture_match = or_(culture_match, Translation.culture_name == f.culture_name)
    return and_(Translation.source_id.is_(None), culture_match)


async def translation_version_status(f: VersionStatusFilter) -> ColumnElement[bool]:
    clauses = []
    if f.include_current_versions:
        clauses.append(Translation.is_current_version.is_(True))
    if f.include_draft_versions:
        clauses.append(Translation.is_draft_version.is_(True))
    if f.include_old_versions:
        clauses.append(Translation.is_old_version.is_(True))
    if not clauses:
        return false()
    return or_(*clauses)


async def translation_not_filled(f: NotFilledFilter) -> ColumnElement[bool]:
    return Translation.content == Translation.translation_name


async def translation_search(f: SearchFilter) -> ColumnElement[bool]:
    term = f.search_term or ""
    return or_(
        _contains_ci(Translation.internal_group_name1, term),
        _contains_ci(Translation.internal_group_name2, term),
        _contains_ci(Translation.resource_name, term),
        _contains_ci(Translation.translation_name, term),
        _contains_ci(Translation.content, term),
    )


# ── DataSet ───────────────────────────────────────────────────────────────────


async def data_set_search(f: SearchFilter) -> ColumnElement[bool]:
    term = f.search_term or ""
    return or_(
        _contains_ci(DataSet.name, term),
        _contains_ci(DataSet.description, term),
        _contains_ci(DataSet.notes, term),
    )


# ── Log ───────────────────────────────────────────────────────────────────────


async def log_data_set_id(f: DataSetIdFilter) -> ColumnElement[bool]:
    return Log.data_set_id == f.value


async def log_type(f: LogTypeFilter) -> ColumnElement[bool]:
    return Log.log_type == f.value


async def log_status(f: LogStatusFilter) -> ColumnElement[bool]:
    return Log.status == f.value


async def log_search(f: SearchFilter) -> ColumnElement[bool]:
    term = f.search_term or ""
    return or_(
        _contains_ci(Log.target, term),
        _contains_ci(Log.error_message, term),
        _contains_ci(Log.details, term),
    )


def register_default_handlers(registry: FilterHandlerRegistry) -> None:
    registry.register(Translation, DataSetIdFilter, translation_data_set_id)
    registry.register(Translation, CultureNameFilter, translation_culture_name)
    registry.register(Translation, ResourceNameFilter, translation_resource_name)
    registry.register(Translation, InternalGroupName1Filter, translation_internal_group_name1)
    registry.register(Translation, BaseTranslationFilter, translation_base)
    registry.register(Translation, VersionStatusFilter, translation_version_status)
    registry.register(Translation, NotFilledFilter, translation_not_filled)
    registry.register(Translation, SearchFilter, translation_search)
    registry.register(DataSet, SearchFilter, data_set_search)
    registry.register(Log, DataSetIdFilter, log_data_set_id)
    registry.register(Log, LogTypeFilter, log_type)
    registry.register(Log, LogStatusFilter, log_status)
    registry.register(Log, SearchFilter, log_search)


register_default_handlers(filter_registry)
