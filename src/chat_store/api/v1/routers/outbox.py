from __future__ import annotations

from fastapi import APIRouter, Query

from chat_store.api.deps import UoWDep
from chat_store.api.v1.schemas.common import CountResponse
from chat_store.api.v1.schemas.outbox import OutboxEntryResponse, OutboxStatsResponse
from chat_store.config import settings
from chat_store.services import outbox_service

router = APIRouter(prefix="/api/v1/outbox", tags=["outbox"])


@router.get("", response_model=list[OutboxEntryResponse])
async def list_outbox(
    uow: UoWDep,
    conversation_id: str | None = Query(None),
) -> list[OutboxEntryResponse]:
    if conversation_id is not None:
        entries = await outbox_service.list_for_conversation(conversation_id, uow)
    else:
        entries = await outbox_service.dequeue_pending(settings.OUTBOX_MAX_RETRIES, uow)
    return [OutboxEntryResponse.model_validate(e, from_attributes=True) for e in entries]


@router.get("/stats", response_model=OutboxStatsResponse)
async def outbox_stats(uow: UoWDep) -> OutboxStatsResponse:
    stats = await outbox_service.stats(settings.OUTBOX_MAX_RETRIES, uow)
    return OutboxStatsResponse.model_validate(stats, from_attributes=True)


@router.delete("/failed", response_model=CountResponse)
async def clear_failed(uow: UoWDep) -> CountResponse:
    deleted = await outbox_service.clear_failed(settings.OUTBOX_MAX_RETRIES, uow)
    return CountResponse(count=deleted)
