from __future__ import annotations

from fastapi import APIRouter

from chat_store.api.deps import ClockDep, UoWDep
from chat_store.api.v1.schemas.conversation import (
    ConversationResponse,
    ConversationUpsertRequest,
)
from chat_store.domain.entities.conversation import Conversation
from chat_store.services import conversation_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(uow: UoWDep) -> list[ConversationResponse]:
    convs = await conversation_service.list_conversations(uow)
    return [ConversationResponse.model_validate(c, from_attributes=True) for c in convs]


@router.put("/{conversation_id}", response_model=ConversationResponse)
async def put_conversation(
    conversation_id: str,
    body: ConversationUpsertRequest,
    uow: UoWDep,
    clock: ClockDep,
) -> ConversationResponse:
    now = clock.now()
    conv = Conversation(
        id=conversation_id,
        type=body.type,
        participant_ids=body.participant_ids,
        name=body.name,
        description=body.description,
        image_url=body.image_url,
        last_message_id=body.last_message_id,
        last_message_at=body.last_message_at,
        unread_count=body.unread_count,
        settings=body.settings,
        created_at=body.created_at or now,
        updated_at=body.updated_at or now,
        sync_status=body.sync_status,
    )
    conv = await conversation_service.save_conversation(conv, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(conversation_id: str, uow: UoWDep) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)
