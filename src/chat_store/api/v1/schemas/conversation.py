from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from chat_store.domain.value_objects.enums import ConversationType, SyncStatus


class ConversationUpsertRequest(BaseModel):
    type: ConversationType = ConversationType.DIRECT
    participant_ids: list[str] = Field(default_factory=list)
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    last_message_id: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = Field(0, ge=0)
    settings: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sync_status: SyncStatus = SyncStatus.SYNCED


class ConversationResponse(BaseModel):
    id: str
    type: str
    participant_ids: list[str]
    name: str | None
    description: str | None
    image_url: str | None
    last_message_id: str | None
    last_message_at: datetime | None
    unread_count: int
    settings: dict[str, Any] | None
    sync_status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
