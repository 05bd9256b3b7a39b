from __future__ import annotations

from typing import Protocol

from chat_store.domain.entities.message import Message


class EventNotifier(Protocol):
    """Pushes store changes to whoever renders them."""

    async def publish(self, event_type: str, message: Message) -> None: ...


class NullNotifier:
    async def publish(self, event_type: str, message: Message) -> None:
        return None
