from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_store.application.dto.stats import OutboxStats
from chat_store.domain.entities.outbox_entry import OutboxEntry


class OutboxRepository(Protocol):
    async def add(self, entry: OutboxEntry) -> None: ...

    async def get(self, temp_id: str) -> OutboxEntry | None: ...

    async def fetch_pending(
        self, max_retries: int, limit: int | None = None,
    ) -> list[OutboxEntry]:
        """Entries with retry_count below the ceiling, oldest first."""
        ...

    async def list_for_conversation(self, conversation_id: str) -> list[OutboxEntry]: ...

    async def mark_failed(self, temp_id: str, error: str, ts: datetime) -> int | None:
        """Increment the retry counter. Returns the new count, None if unknown."""
        ...

    async def remove(self, temp_id: str) -> None: ...

    async def clear_failed(self, max_retries: int) -> int: ...

    async def stats(self, max_retries: int) -> OutboxStats: ...
