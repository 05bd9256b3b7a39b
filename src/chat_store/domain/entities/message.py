from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from chat_store.domain.value_objects.enums import SyncStatus

OPTIMISTIC_PREFIX = "optimistic_"


def optimistic_id(temp_id: str) -> str:
    return f"{OPTIMISTIC_PREFIX}{temp_id}"


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender_id: str
    type: str
    status: str
    created_at: datetime
    updated_at: datetime
    content: str | None = None
    sender_username: str | None = None
    sender_avatar: str | None = None
    media_urls: list[str] | None = None
    metadata: dict[str, Any] | None = None
    reactions: dict[str, Any] | None = None
    reply_to_id: str | None = None
    temp_id: str | None = None
    sync_status: str = SyncStatus.SYNCED

    @property
    def is_optimistic(self) -> bool:
        """True until the backend has confirmed this message."""
        return self.sync_status != SyncStatus.SYNCED

    def with_changes(self, **changes: Any) -> Message:
        return replace(self, **changes)
