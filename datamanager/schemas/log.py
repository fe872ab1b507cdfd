from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    log_type: str
    action: str
    target: str | None = None
    status: str
    started_at: datetime
    ended_at: datetime | None = None
    error_message: str | None = None
    details: str | None = None
    data_set_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
