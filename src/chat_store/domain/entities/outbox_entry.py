from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_store.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class OutboxEntry:
    """A message waiting to be delivered to the backend."""

    temp_id: str
    conversation_id: str
    content: str
    created_at: datetime
    type: str = MessageType.TEXT
    media_local_path: str | None = None
    retry_count: int = 0
    last_error: str | None = None
    last_retry_at: datetime | None = None

    def is_exhausted(self, max_retries: int) -> bool:
        return self.retry_count >= max_retries
