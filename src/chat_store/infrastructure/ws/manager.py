"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

from chat_store.domain.entities.message import Message
from chat_store.infrastructure.ws.protocol import WsOutbound, message_data

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks WebSocket connections and their conversation subscriptions.

    Doubles as the store's event notifier: ``publish`` fans a message event out
    to every connection subscribed to the message's conversation.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._subscriptions: dict[str, set[str]] = {}

    async def connect(self, ws: WebSocket, connection_id: str) -> None:
        await ws.accept()
        self._connections[connection_id] = ws
        logger.debug("WS connected: %s (total=%d)", connection_id, len(self._connections))

    def disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for conversation_id in list(self._subscriptions):
            subs = self._subscriptions[conversation_id]
            subs.discard(connection_id)
            if not subs:
                del self._subscriptions[conversation_id]
        logger.debug("WS disconnected: %s", connection_id)

    def subscribe(self, connection_id: str, conversation_id: str) -> None:
        self._subscriptions.setdefault(conversation_id, set()).add(connection_id)

    def unsubscribe(self, connection_id: str, conversation_id: str) -> None:
        subs = self._subscriptions.get(conversation_id)
        if subs:
            subs.discard(connection_id)

    def subscribers(self, conversation_id: str) -> set[str]:
        return set(self._subscriptions.get(conversation_id, set()))

    async def publish(self, event_type: str, message: Message) -> None:
        await self.broadcast_to_conversation(
            message.conversation_id, event_type, message_data(message),
        )

    async def broadcast_to_conversation(
        self,
        conversation_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send a WS message to all connections subscribed to a conversation."""
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[str] = []
        for connection_id in self.subscribers(conversation_id):
            ws = self._connections.get(connection_id)
            if ws is None:
                continue
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(connection_id)
        for connection_id in dead:
            self.disconnect(connection_id)

    async def send_to_connection(
        self,
        connection_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        ws = self._connections.get(connection_id)
        if ws is None:
            return
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        try:
            await ws.send_text(raw)
        except Exception:
            self.disconnect(connection_id)
