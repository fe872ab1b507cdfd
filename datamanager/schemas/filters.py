"""
Query filters

Each filter is a small, named, typed predicate description. A filter only
describes *what* to match; the SQL for it lives in a handler registered
for the (entity, filter) pair. Inactive filters are ignored by the query
composer, so callers can send empty filters freely.
"""

from typing import Annotated, ClassVar, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class QueryFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: ClassVar[str] = "Filter"

    def is_active(self) -> bool:
        return True


# ── Translation filters ────────────────────────────────────────────────────────


class DataSetIdFilter(QueryFilter):
    name: ClassVar[str] = "Translation.DataSetId"
    type: Literal["data_set_id"] = "data_set_id"
    value: UUID | None = None

    def is_active(self) -> bool:
        return self.value is not None


class CultureNameFilter(QueryFilter):
    name: ClassVar[str] = "Translation.CultureName"
    type: Literal["culture_name"] = "culture_name"
    value: str | None = None

    def is_active(self) -> bool:
        return bool(self.value and self.value.strip())


class ResourceNameFilter(QueryFilter):
    name: ClassVar[str] = "Translation.ResourceName"
    type: Literal["resource_name"] = "resource_name"
    value: str | None = None

    def is_active(self) -> bool:
        return bool(self.value and self.value.strip())


class InternalGroupName1Filter(QueryFilter):
    name: ClassVar[str] = "Translation.InternalGroupName1"
    type: Literal["internal_group_name1"] = "internal_group_name1"
    value: str | None = None

    def is_active(self) -> bool:
        return bool(self.value and self.value.strip())


class BaseTranslationFilter(QueryFilter):
    """Rows that are not linked to a source, in the given culture or culture-neutral."""

    name: ClassVar[str] = "Translation.BaseTranslation"
    type: Literal["base_translation"] = "base_translation"
    culture_name: str | None = None


class VersionStatusFilter(QueryFilter):
    """Select versions by state. Its mere presence disables the current-only default."""

    name: ClassVar[str] = "Translation.VersionStatus"
    type: Literal["version_status"] = "version_status"
    include_current_versions: bool | None = None
    include_draft_versions: bool | None = None
    include_old_versions: bool | None = None

    def is_active(self) -> bool:
        return any(
            flag is not None
            for flag in (self.include_current_versions, self.include_draft_versions, self.include_old_versions)
        )


class NotFilledFilter(QueryFilter):
    """Rows whose content is still the placeholder (equal to the translation name)."""

    name: ClassVar[str] = "Translation.NotFilled"
    type: Literal["not_filled"] = "not_filled"
    enabled: bool = True

    def is_active(self) -> bool:
        return self.enabled


# ── Log filters ────────────────────────────────────────────────────────────────


class LogTypeFilter(QueryFilter):
    name: ClassVar[str] = "Log.LogType"
    type: Literal["log_type"] = "log_type"
    value: str | None = None

    def is_active(self) -> bool:
        return bool(self.value and self.value.strip())


class LogStatusFilter(QueryFilter):
    name: ClassVar[str] = "Log.Status"
    type: Literal["log_status"] = "log_status"
    value: str | None = None

    def is_active(self) -> bool:
        return bool(self.value and self.value.strip())


# ── Shared filters ─────────────────────────────────────────────────────────────


class SearchFilter(QueryFilter):
    """Case-insensitive substring search; the searched columns depend on the entity."""

    name: ClassVar[str] = "Search"
    type: Literal["search"] = "search"
    search_term: str | None = None

    def is_active(self) -> bool:
        return bool(self.search_term and self.search_term.strip())


AnyFilter = Annotated[
    Union[
        DataSetIdFilter,
        CultureNameFilter,
        ResourceNameFilter,
        InternalGroupName1Filter,
        BaseTranslationFilter,
        VersionStatusFilter,
        NotFilledFilter,
        LogTypeFilter,
        LogStatusFilter,
        SearchFilter,
    ],
    Field(discriminator="type"),
]
