from __future__ import annotations

from typing import Any

from chat_store.domain.entities.conversation import Conversation
from chat_store.infrastructure.db.mappers._epoch import (
    from_ms,
    from_ms_opt,
    join_csv,
    split_csv,
    to_ms,
    to_ms_opt,
)
from chat_store.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        type=model.type,
        participant_ids=split_csv(model.participant_ids) or [],
        name=model.name,
        description=model.description,
        image_url=model.image_url,
        last_message_id=model.last_message_id,
        last_message_at=from_ms_opt(model.last_message_at),
        unread_count=model.unread_count,
        settings=model.settings,
        created_at=from_ms(model.created_at),
        updated_at=from_ms(model.updated_at),
        sync_status=model.sync_status,
    )


def entity_to_row(entity: Conversation) -> dict[str, Any]:
    return {
        "id": entity.id,
        "type": str(entity.type),
        "participant_ids": join_csv(entity.participant_ids) or "",
        "name": entity.name,
        "description": entity.description,
        "image_url": entity.image_url,
        "last_message_id": entity.last_message_id,
        "last_message_at": to_ms_opt(entity.last_message_at),
        "unread_count": entity.unread_count,
        "settings": entity.settings,
        "created_at": to_ms(entity.created_at),
        "updated_at": to_ms(entity.updated_at),
        "sync_status": str(entity.sync_status),
    }
