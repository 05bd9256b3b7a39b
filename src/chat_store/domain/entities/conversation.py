from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from chat_store.domain.value_objects.enums import SyncStatus


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    type: str
    participant_ids: list[str]
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    last_message_id: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0
    settings: dict[str, Any] | None = None
    sync_status: str = SyncStatus.SYNCED
