from __future__ import annotations

from typing import Any

from chat_store.domain.entities.message import Message
from chat_store.infrastructure.db.mappers._epoch import from_ms, join_csv, split_csv, to_ms
from chat_store.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        sender_username=model.sender_username,
        sender_avatar=model.sender_avatar,
        type=model.type,
        content=model.content,
        media_urls=split_csv(model.media_urls),
        metadata=model.metadata_,
        status=model.status,
        reactions=model.reactions,
        reply_to_id=model.reply_to_id,
        temp_id=model.temp_id,
        created_at=from_ms(model.created_at),
        updated_at=from_ms(model.updated_at),
        sync_status=model.sync_status,
    )


def entity_to_row(entity: Message) -> dict[str, Any]:
    """Column-name keyed values for Core inserts."""
    return {
        "id": entity.id,
        "conversation_id": entity.conversation_id,
        "sender_id": entity.sender_id,
        "sender_username": entity.sender_username,
        "sender_avatar": entity.sender_avatar,
        "type": str(entity.type),
        "content": entity.content,
        "media_urls": join_csv(entity.media_urls),
        "metadata": entity.metadata,
        "status": str(entity.status),
        "reactions": entity.reactions,
        "reply_to_id": entity.reply_to_id,
        "temp_id": entity.temp_id,
        "created_at": to_ms(entity.created_at),
        "updated_at": to_ms(entity.updated_at),
        "sync_status": str(entity.sync_status),
    }
