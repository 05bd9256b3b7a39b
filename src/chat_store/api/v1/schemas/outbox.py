from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class OutboxEntryResponse(BaseModel):
    temp_id: str
    conversation_id: str
    content: str
    type: str
    media_local_path: str | None
    created_at: datetime
    retry_count: int
    last_error: str | None
    last_retry_at: datetime | None

    model_config = {"from_attributes": True}


class OutboxStatsResponse(BaseModel):
    total: int
    pending: int
    failed: int

    model_config = {"from_attributes": True}
