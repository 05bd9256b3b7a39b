from __future__ import annotations

from fastapi import APIRouter, Query

from chat_store.api.deps import ClockDep, ManagerDep, UoWDep
from chat_store.api.v1.schemas.common import PaginatedResponse
from chat_store.api.v1.schemas.message import (
    MessageResponse,
    SendMessageRequest,
    UpdateStatusRequest,
)
from chat_store.application.dto.message import SendMessageDTO
from chat_store.config import settings
from chat_store.services import message_service

router = APIRouter(prefix="/api/v1", tags=["messages"])


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    conversation_id: str,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(settings.MESSAGE_PAGE_SIZE, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_messages(conversation_id, cursor, limit, uow)
    next_cursor = messages[-1].id if len(messages) == limit else None
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m, from_attributes=True) for m in messages],
        next_cursor=next_cursor,
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    conversation_id: str,
    body: SendMessageRequest,
    uow: UoWDep,
    clock: ClockDep,
    manager: ManagerDep,
) -> MessageResponse:
    dto = SendMessageDTO(conversation_id=conversation_id, **body.model_dump())
    msg = await message_service.send_message(dto, uow, clock)
    await manager.publish("message.created", msg)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.patch("/messages/{message_id}/status", response_model=MessageResponse)
async def update_status(
    message_id: str,
    body: UpdateStatusRequest,
    uow: UoWDep,
    clock: ClockDep,
) -> MessageResponse:
    msg = await message_service.update_status(message_id, body.status, uow, clock)
    return MessageResponse.model_validate(msg, from_attributes=True)
