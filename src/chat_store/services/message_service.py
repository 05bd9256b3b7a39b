from __future__ import annotations

import logging
import uuid
from datetime import datetime

from chat_store.application.dto.message import SendMessageDTO
from chat_store.application.exceptions import ConflictError, NotFoundError, ValidationError
from chat_store.application.ports.clock import Clock, system_clock
from chat_store.application.uow import UnitOfWork
from chat_store.domain.entities.message import Message, optimistic_id
from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.domain.value_objects.enums import MessageStatus, SyncStatus
from chat_store.services import outbox_service

logger = logging.getLogger(__name__)


async def _require_conversation(conversation_id: str, uow: UnitOfWork) -> None:
    if await uow.conversations.get_by_id(conversation_id) is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")


async def _store(message: Message, uow: UnitOfWork) -> tuple[Message, bool]:
    """Upsert while keeping a single row per temp_id.

    Returns the row that is stored and whether an older row was deleted to make room.
    """
    replaced = False
    if message.temp_id:
        existing = await uow.messages.get_by_temp_id(message.temp_id)
        if existing is not None and existing.id != message.id:
            if message.is_optimistic and not existing.is_optimistic:
                logger.debug(
                    "Ignoring optimistic %s, %s already confirmed as %s",
                    message.id, message.temp_id, existing.id,
                )
                return existing, False
            await uow.messages_w.delete_by_temp_id(message.temp_id)
            replaced = True
        if not message.is_optimistic:
            await uow.outbox.remove(message.temp_id)
    await uow.messages_w.upsert(message)
    return message, replaced


async def save_message(
    message: Message,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    await _require_conversation(message.conversation_id, uow)
    stored, replaced = await _store(message, uow)
    if replaced:
        await uow.conversations_w.refresh_last_message(message.conversation_id, clock.now())
    elif stored is message:
        await uow.conversations_w.touch_last_message(
            message.conversation_id, message.id, message.created_at, clock.now(),
        )
    await uow.commit()
    logger.debug("Message saved: %s", stored.id)
    return stored


async def save_messages(
    messages: list[Message],
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> list[Message]:
    """Batch save. Each conversation's pointer moves to the newest message of the batch."""
    if not messages:
        return []
    for conversation_id in {m.conversation_id for m in messages}:
        await _require_conversation(conversation_id, uow)

    stored: list[Message] = []
    newest: dict[str, Message] = {}
    replaced_in: set[str] = set()
    for message in messages:
        kept, replaced = await _store(message, uow)
        stored.append(kept)
        if replaced:
            replaced_in.add(message.conversation_id)
        if kept is not message:
            continue
        current = newest.get(message.conversation_id)
        if current is None or message.created_at > current.created_at:
            newest[message.conversation_id] = message

    now = clock.now()
    for conversation_id, latest in newest.items():
        if conversation_id in replaced_in:
            await uow.conversations_w.refresh_last_message(conversation_id, now)
        else:
            await uow.conversations_w.touch_last_message(
                conversation_id, latest.id, latest.created_at, now,
            )
    await uow.commit()
    logger.debug("Batch saved %d messages", len(stored))
    return stored


async def list_messages(
    conversation_id: str,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    """Page of messages strictly older than the cursor message, newest first."""
    if limit < 1:
        raise ValidationError("limit must be positive")
    await _require_conversation(conversation_id, uow)

    before: datetime | None = None
    if cursor is not None:
        cursor_message = await uow.messages.get_by_id(cursor)
        if cursor_message is None or cursor_message.conversation_id != conversation_id:
            raise NotFoundError(f"Cursor message {cursor} not found")
        before = cursor_message.created_at

    return await uow.messages.list_messages(conversation_id, before=before, limit=limit)


async def get_latest_messages(
    conversation_id: str,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    return await list_messages(conversation_id, None, limit, uow)


async def get_latest_message(conversation_id: str, uow: UnitOfWork) -> Message | None:
    return await uow.messages.get_latest(conversation_id)


async def get_by_temp_id(temp_id: str, uow: UnitOfWork) -> Message | None:
    return await uow.messages.get_by_temp_id(temp_id)


async def send_message(
    dto: SendMessageDTO,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Store an optimistic message and queue it in the outbox, atomically."""
    await _require_conversation(dto.conversation_id, uow)

    temp_id = str(uuid.uuid4())
    now = clock.now()
    message = Message(
        id=optimistic_id(temp_id),
        conversation_id=dto.conversation_id,
        sender_id=dto.sender_id,
        sender_username=dto.sender_username,
        type=dto.type,
        content=dto.content,
        media_urls=dto.media_urls,
        metadata=dto.metadata,
        status=MessageStatus.SENDING,
        reply_to_id=dto.reply_to_id,
        temp_id=temp_id,
        created_at=now,
        updated_at=now,
        sync_status=SyncStatus.PENDING,
    )

    await uow.messages_w.upsert(message)
    await uow.conversations_w.touch_last_message(
        message.conversation_id, message.id, message.created_at, now,
    )
    await uow.outbox.add(
        outbox_service.entry_for(message, media_local_path=dto.media_local_path)
    )
    await uow.commit()
    logger.info("Queued optimistic message %s in %s", temp_id, dto.conversation_id)
    return message


async def confirm_message(
    temp_id: str,
    server_message: Message,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Swap the optimistic row for its confirmed counterpart and drop the outbox entry."""
    status = server_message.status
    if status == MessageStatus.SENDING:
        status = MessageStatus.SENT
    confirmed = server_message.with_changes(
        temp_id=temp_id, status=status, sync_status=SyncStatus.SYNCED,
    )

    await uow.messages_w.delete_by_temp_id(temp_id)
    await uow.messages_w.upsert(confirmed)
    await uow.outbox.remove(temp_id)
    # the deleted optimistic row may be what the pointer references
    await uow.conversations_w.refresh_last_message(confirmed.conversation_id, clock.now())
    await uow.commit()
    logger.debug("Replaced optimistic message: %s -> %s", temp_id, confirmed.id)
    return confirmed


async def update_status(
    message_id: str,
    status: MessageStatus,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Set a delivery status and mark the message synced.

    Messages still waiting in the outbox are refused: marking them synced
    would hide them from the sync worker.
    """
    current = await uow.messages.get_by_id(message_id)
    if current is None:
        raise NotFoundError(f"Message {message_id} not found")
    if current.temp_id and current.is_optimistic:
        raise ConflictError(f"Message {message_id} has not been confirmed by the backend")

    await uow.messages_w.update_status(message_id, status, clock.now())
    await uow.commit()
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError(f"Message {message_id} not found")
    return message


async def list_unsynced(uow: UnitOfWork) -> list[Message]:
    return await uow.messages.list_unsynced()


async def mark_synced(
    message_ids: list[str],
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> None:
    if not message_ids:
        return
    await uow.messages_w.mark_synced(message_ids, clock.now())
    await uow.commit()


async def delete_message(
    message_id: str,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> None:
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        return
    await uow.messages_w.delete(message_id)
    await uow.conversations_w.refresh_last_message(message.conversation_id, clock.now())
    await uow.commit()


async def prune_conversation(
    conversation_id: str,
    keep_latest: int,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> int:
    """Drop everything but the newest ``keep_latest`` messages of a conversation."""
    if keep_latest < 1:
        raise ValidationError("keep_latest must be positive")
    deleted = await uow.messages_w.prune(conversation_id, keep_latest)
    if deleted:
        await uow.conversations_w.refresh_last_message(conversation_id, clock.now())
    await uow.commit()
    logger.info(
        "Pruned %d messages from %s, kept latest %d",
        deleted, conversation_id, keep_latest,
    )
    return deleted


async def fail_message(
    temp_id: str,
    error: str | None,
    uow: UnitOfWork,
    clock: Clock = system_clock,
    *,
    max_retries: int,
) -> OutboxEntry | None:
    return await outbox_service.mark_failed(temp_id, error, max_retries, uow, clock)
