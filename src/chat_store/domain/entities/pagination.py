from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PaginationMetadata:
    conversation_id: str
    oldest_message_id: str | None = None
    has_more_messages: bool = True
    last_sync_at: datetime | None = None
    total_messages_count: int = 0
