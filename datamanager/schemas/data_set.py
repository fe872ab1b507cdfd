from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SaveDataSetCommand(BaseModel):
    """Create (no id) or update (id) a data set together with its include edges."""

    id: UUID | None = Field(None, description="Existing data set to update; empty creates a new one")
    name: str = Field(..., min_length=1, max_length=200, description="Canonicalized to a URL-safe slug")
    description: str | None = Field(None, max_length=1000)
    notes: str | None = None
    allowed_identity_ids: list[str] = Field(default_factory=list, description="Empty means public")
    available_cultures: list[str] = Field(default_factory=list, description="Empty means all system cultures")
    secret_key: str | None = Field(None, max_length=500)
    webhook_urls: list[str] = Field(default_factory=list, description="Invalid URLs are dropped")
    included_data_set_ids: list[UUID] = Field(default_factory=list, description="Include edges, in precedence order")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Mobile App",
                "description": "Strings for the mobile app",
                "allowed_identity_ids": [],
                "available_cultures": ["en-US", "de-DE"],
                "webhook_urls": ["https://example.com/hooks/translations"],
                "included_data_set_ids": [],
            }
        }
    )


class DataSetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    notes: str | None = None
    allowed_identity_ids: list[str] = []
    available_cultures: list[str] = []
    webhook_urls: list[str] = []
    included_data_set_ids: list[UUID] = []
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    updated_by: str | None = None


class DataSetSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class DataSetHierarchyResponse(BaseModel):
    root_id: UUID
    data_sets: list[DataSetSummary]


class AccessibleDataSetsResponse(BaseModel):
    all_accessible: bool
    ids: list[UUID]
