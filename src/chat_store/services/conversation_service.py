from __future__ import annotations

import logging
from dataclasses import replace

from chat_store.application.exceptions import NotFoundError
from chat_store.application.ports.clock import Clock, system_clock
from chat_store.application.uow import UnitOfWork
from chat_store.domain.entities.conversation import Conversation
from chat_store.domain.entities.pagination import PaginationMetadata

logger = logging.getLogger(__name__)


async def save_conversation(conversation: Conversation, uow: UnitOfWork) -> Conversation:
    await uow.conversations_w.upsert(conversation)
    await uow.commit()
    logger.debug("Conversation saved: %s", conversation.id)
    return conversation


async def get_conversation(conversation_id: str, uow: UnitOfWork) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    if conversation is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")
    return conversation


async def list_conversations(uow: UnitOfWork) -> list[Conversation]:
    return await uow.conversations.list_all()


async def get_pagination(conversation_id: str, uow: UnitOfWork) -> PaginationMetadata | None:
    return await uow.pagination.get(conversation_id)


async def save_pagination(metadata: PaginationMetadata, uow: UnitOfWork) -> None:
    await uow.pagination.save(metadata)
    await uow.commit()


async def record_sync(
    conversation_id: str,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> PaginationMetadata:
    """Stamp ``last_sync_at`` on the conversation's pagination metadata."""
    current = await uow.pagination.get(conversation_id)
    now = clock.now()
    if current is None:
        updated = PaginationMetadata(conversation_id=conversation_id, last_sync_at=now)
    else:
        updated = replace(current, last_sync_at=now)
    await uow.pagination.save(updated)
    await uow.commit()
    return updated
