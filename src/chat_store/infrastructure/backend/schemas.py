"""Backend JSON payloads (camelCase) and their mapping onto local entities."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chat_store.domain.entities.message import Message
from chat_store.domain.value_objects.enums import MessageStatus, MessageType, SyncStatus


def parse_message_type(raw: str | None) -> MessageType:
    try:
        return MessageType((raw or "").lower())
    except ValueError:
        return MessageType.TEXT


def parse_message_status(raw: str | None) -> MessageStatus:
    try:
        return MessageStatus((raw or "").lower())
    except ValueError:
        return MessageStatus.SENT


class BackendSender(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    username: str | None = None
    avatar: str | None = Field(None, validation_alias=AliasChoices("avatar", "avatarUrl"))


class BackendMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    conversation_id: str = Field("", alias="conversationId")
    sender_id: str | None = Field(None, alias="senderId")
    sender_username: str | None = Field(None, alias="senderUsername")
    sender: BackendSender | None = None
    content: str | None = None
    type: str | None = None
    status: str | None = None
    metadata: dict[str, Any] | None = None
    reactions: dict[str, Any] | None = None
    reply_to_id: str | None = Field(None, alias="replyToId")
    media_urls: list[str] | None = Field(
        None, validation_alias=AliasChoices("mediaUrls", "attachments"),
    )
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    temp_id: str | None = Field(None, alias="tempId")

    def to_entity(self) -> Message:
        sender_username = self.sender_username or (self.sender.username if self.sender else None)
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_id=self.sender_id or sender_username or "",
            sender_username=sender_username,
            sender_avatar=self.sender.avatar if self.sender else None,
            type=parse_message_type(self.type),
            content=self.content,
            media_urls=self.media_urls,
            metadata=self.metadata,
            status=parse_message_status(self.status),
            reactions=self.reactions,
            reply_to_id=self.reply_to_id,
            temp_id=self.temp_id,
            created_at=self.created_at,
            updated_at=self.updated_at or self.created_at,
            sync_status=SyncStatus.SYNCED,
        )


def unwrap(body: Any) -> Any:
    """Strip the ``{"data": ...}`` envelope when present."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body
