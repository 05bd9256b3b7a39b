"""WebSocket message envelope models."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel

from chat_store.domain.entities.message import Message


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # subscribe | unsubscribe | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message.created | message.confirmed | message.failed | subscribed | error | pong
    data: dict[str, Any] = {}


def message_data(message: Message) -> dict[str, Any]:
    return asdict(message)
