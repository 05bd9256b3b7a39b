from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chat_store.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: str) -> Conversation | None: ...

    async def list_all(self) -> list[Conversation]:
        """Most recently updated first."""
        ...


class ConversationWriter(Protocol):
    async def upsert(self, conversation: Conversation) -> None: ...

    async def touch_last_message(
        self,
        conversation_id: str,
        message_id: str,
        message_ts: datetime,
        now: datetime,
    ) -> None:
        """Move the last-message pointer unless it already points at something newer."""
        ...

    async def refresh_last_message(self, conversation_id: str, now: datetime) -> None:
        """Point at the newest stored message, or clear the pointer when there is none."""
        ...
