from __future__ import annotations

import logging

from chat_store.application.dto.stats import OutboxStats
from chat_store.application.exceptions import ConflictError, ValidationError
from chat_store.application.ports.clock import Clock, system_clock
from chat_store.application.uow import UnitOfWork
from chat_store.domain.entities.message import Message
from chat_store.domain.entities.outbox_entry import OutboxEntry

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


def entry_for(message: Message, *, media_local_path: str | None = None) -> OutboxEntry:
    if not message.temp_id:
        raise ValidationError("Only messages with a temp_id can be queued")
    return OutboxEntry(
        temp_id=message.temp_id,
        conversation_id=message.conversation_id,
        content=message.content or "",
        type=message.type,
        media_local_path=media_local_path,
        created_at=message.created_at,
    )


async def enqueue(
    message: Message,
    uow: UnitOfWork,
    *,
    media_local_path: str | None = None,
) -> OutboxEntry:
    """Queue a message for delivery. A temp_id the backend already confirmed is a conflict."""
    entry = entry_for(message, media_local_path=media_local_path)

    stored = await uow.messages.get_by_temp_id(entry.temp_id)
    if stored is not None and not stored.is_optimistic:
        raise ConflictError(f"Message {entry.temp_id} already confirmed as {stored.id}")

    existing = await uow.outbox.get(entry.temp_id)
    if existing is not None:
        return existing

    await uow.outbox.add(entry)
    await uow.commit()
    logger.debug("Message added to outbox: %s", entry.temp_id)
    return entry


async def dequeue_pending(
    max_retries: int,
    uow: UnitOfWork,
    *,
    limit: int | None = None,
) -> list[OutboxEntry]:
    """Entries still under the retry ceiling, oldest first."""
    return await uow.outbox.fetch_pending(max_retries, limit)


async def list_for_conversation(conversation_id: str, uow: UnitOfWork) -> list[OutboxEntry]:
    return await uow.outbox.list_for_conversation(conversation_id)


async def mark_failed(
    temp_id: str,
    error: str | None,
    max_retries: int,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> OutboxEntry | None:
    """Count a failed delivery. Once the ceiling is hit the optimistic message is failed too."""
    now = clock.now()
    retry_count = await uow.outbox.mark_failed(temp_id, error or UNKNOWN_ERROR, now)
    if retry_count is None:
        logger.warning("Outbox entry %s vanished before it could be marked failed", temp_id)
        return None

    if retry_count >= max_retries:
        await uow.messages_w.mark_failed_by_temp_id(temp_id, now)
        logger.warning("Outbox entry %s gave up after %d attempts", temp_id, retry_count)
    await uow.commit()
    return await uow.outbox.get(temp_id)


async def remove(temp_id: str, uow: UnitOfWork) -> None:
    await uow.outbox.remove(temp_id)
    await uow.commit()


async def clear_failed(max_retries: int, uow: UnitOfWork) -> int:
    deleted = await uow.outbox.clear_failed(max_retries)
    await uow.commit()
    logger.info("Cleared %d failed outbox messages", deleted)
    return deleted


async def stats(max_retries: int, uow: UnitOfWork) -> OutboxStats:
    return await uow.outbox.stats(max_retries)
