from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chat_store.config import settings
from chat_store.infrastructure.ws.manager import ConnectionManager
from chat_store.infrastructure.ws.protocol import WsInbound

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/chat")
async def ws_chat(websocket: WebSocket) -> None:
    manager: ConnectionManager = websocket.app.state.manager
    connection_id = uuid.uuid4().hex
    await manager.connect(websocket, connection_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(manager, connection_id), name=f"ws-heartbeat-{connection_id}",
    )
    try:
        await _read_loop(websocket, manager, connection_id)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", connection_id)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(connection_id)


async def _heartbeat(manager: ConnectionManager, connection_id: str) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await manager.send_to_connection(connection_id, "pong", {})
    except asyncio.CancelledError:
        pass


async def _read_loop(ws: WebSocket, manager: ConnectionManager, connection_id: str) -> None:
    async def reply(event_type: str, **data: object) -> None:
        await manager.send_to_connection(connection_id, event_type, data)

    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await reply("error", code="invalid_payload")
            continue

        if msg.type == "ping":
            await reply("pong")
            continue

        if msg.type not in ("subscribe", "unsubscribe"):
            await reply("error", code="unknown_type", type=msg.type)
            continue

        conversation_id = msg.data.get("conversation_id")
        if not isinstance(conversation_id, str) or not conversation_id:
            await reply("error", code="invalid_data", detail="conversation_id is required")
            continue

        if msg.type == "subscribe":
            manager.subscribe(connection_id, conversation_id)
            await reply("subscribed", conversation_id=conversation_id)
        else:
            manager.unsubscribe(connection_id, conversation_id)
            await reply("unsubscribed", conversation_id=conversation_id)
