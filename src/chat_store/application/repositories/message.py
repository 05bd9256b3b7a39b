from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_store.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: str) -> Message | None: ...

    async def get_by_temp_id(self, temp_id: str) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: str,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        """Newest first. With ``before`` only rows strictly older than it."""
        ...

    async def get_latest(self, conversation_id: str) -> Message | None: ...

    async def get_latest_synced(self, conversation_id: str) -> Message | None:
        """Newest message the backend knows about."""
        ...

    async def list_unsynced(self) -> list[Message]: ...

    async def list_stale_optimistic(self, threshold: datetime) -> list[Message]: ...

    async def count_unsynced(self) -> int: ...


class MessageWriter(Protocol):
    async def upsert(self, message: Message) -> None: ...

    async def upsert_many(self, messages: list[Message]) -> None: ...

    async def delete(self, message_id: str) -> None: ...

    async def delete_by_temp_id(self, temp_id: str) -> int: ...

    async def update_status(self, message_id: str, status: str, ts: datetime) -> bool:
        """Set delivery status and mark synced. Returns False if no row matched."""
        ...

    async def mark_failed_by_temp_id(self, temp_id: str, ts: datetime) -> None: ...

    async def mark_synced(self, message_ids: list[str], ts: datetime) -> None: ...

    async def prune(self, conversation_id: str, keep_latest: int) -> int: ...
