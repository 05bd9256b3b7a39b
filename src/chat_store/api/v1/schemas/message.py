from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from chat_store.domain.value_objects.enums import MessageStatus, MessageType


class SendMessageRequest(BaseModel):
    sender_id: str
    type: MessageType = MessageType.TEXT
    content: str | None = None
    sender_username: str | None = None
    media_urls: list[str] | None = None
    media_local_path: str | None = None
    metadata: dict[str, Any] | None = None
    reply_to_id: str | None = None


class UpdateStatusRequest(BaseModel):
    status: MessageStatus


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_username: str | None
    sender_avatar: str | None
    type: str
    content: str | None
    media_urls: list[str] | None
    metadata: dict[str, Any] | None
    status: str
    reactions: dict[str, Any] | None
    reply_to_id: str | None
    temp_id: str | None
    sync_status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
