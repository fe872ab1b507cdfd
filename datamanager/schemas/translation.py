from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from datamanager.utils.patch import Patch, PatchModel, patch_field


class TranslationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    internal_group_name1: str | None = None
    internal_group_name2: str | None = None
    resource_name: str
    translation_name: str
    translation_key: str
    culture_name: str | None = None
    content: str
    content_template: str | None = None
    content_updated_at: datetime | None = None
    data_set_id: UUID | None = None
    source_translation_id: UUID | None = None
    source_translation_last_synced_at: datetime | None = None
    layout_id: UUID | None = None
    source_id: UUID | None = None
    is_current_version: bool
    is_draft_version: bool
    is_old_version: bool
    original_translation_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    updated_by: str | None = None


class FlattenedTranslation(BaseModel):
    """A translation as seen from a hierarchy root, tagged with the data set it came from."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resource_name: str
    translation_name: str
    culture_name: str | None = None
    content: str
    content_template: str | None = None
    data_set_id: UUID | None = None


class SaveSingleTranslationCommand(PatchModel):
    """
    Partial save of one translation row.

    Every field distinguishes "not sent" from "sent as null": only sent
    fields are written, and a sent null clears the stored value.
    """

    id: Patch[UUID] = patch_field()
    internal_group_name1: Patch[str] = patch_field()
    internal_group_name2: Patch[str] = patch_field()
    resource_name: Patch[str] = patch_field()
    translation_name: Patch[str] = patch_field()
    culture_name: Patch[str] = patch_field()
    content: Patch[str] = patch_field()
    content_template: Patch[str] = patch_field()
    content_updated_at: Patch[datetime] = patch_field()
    data_set_id: Patch[UUID] = patch_field()
    layout_id: Patch[UUID] = patch_field()
    source_id: Patch[UUID] = patch_field()
    source_translation_id: Patch[UUID] = patch_field()
    source_translation_last_synced_at: Patch[datetime] = patch_field()
    is_draft_version: Patch[bool] = patch_field()


class SaveTranslationCommand(BaseModel):
    """Save one key in several cultures at once; every culture is published."""

    id: UUID | None = Field(None, description="Existing translation; its key and data set are reused")
    resource_name: str | None = None
    translation_name: str | None = None
    data_set_id: UUID | None = None
    internal_group_name1: str | None = None
    internal_group_name2: str | None = None
    translations: dict[str, str] = Field(..., description="Culture name -> content")


class SaveSingleTranslationResult(BaseModel):
    id: UUID = Field(..., description="The saved row; unchanged when the write was stale")


class SaveTranslationResult(BaseModel):
    id: UUID | None = Field(None, description="The requested translation, or the first one saved")
    translation_ids: dict[str, UUID] = Field(default_factory=dict)


class TranslationWithRelatedResponse(BaseModel):
    translation: TranslationResponse
    related: list[TranslationResponse]


class IndexTranslationsCommand(BaseModel):
    data_set_id: UUID | None = Field(None, description="Limit the sweep to one data set")


class IndexTranslationsResult(BaseModel):
    processed_count: int = 0
    updated_count: int = 0
    errors: list[str] = Field(default_factory=list)


class RemoveDuplicateTranslationsCommand(BaseModel):
    specific_data_set_id: UUID
    base_data_set_id: UUID


class RemoveDuplicateTranslationsResult(BaseModel):
    processed_count: int = 0
    removed_count: int = 0
    errors: list[str] = Field(default_factory=list)


class MaterializationResult(BaseModel):
    data_set_id: UUID
    affected_count: int


class CultureListResponse(BaseModel):
    cultures: list[str]
