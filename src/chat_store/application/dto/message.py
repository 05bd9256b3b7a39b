from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chat_store.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    conversation_id: str
    sender_id: str
    type: MessageType = MessageType.TEXT
    content: str | None = None
    sender_username: str | None = None
    media_urls: list[str] | None = None
    media_local_path: str | None = None
    metadata: dict[str, Any] | None = None
    reply_to_id: str | None = None
