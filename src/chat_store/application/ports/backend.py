from __future__ import annotations

from typing import Protocol

from chat_store.domain.entities.message import Message
from chat_store.domain.entities.outbox_entry import OutboxEntry


class ChatBackend(Protocol):
    async def send_message(self, entry: OutboxEntry) -> Message:
        """Deliver a queued message. Returns the server-confirmed message."""
        ...

    async def fetch_messages(
        self,
        conversation_id: str,
        *,
        after: str | None = None,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]: ...

    async def is_reachable(self) -> bool: ...
