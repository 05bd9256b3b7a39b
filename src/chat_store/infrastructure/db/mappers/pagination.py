from __future__ import annotations

from typing import Any

from chat_store.domain.entities.pagination import PaginationMetadata
from chat_store.infrastructure.db.mappers._epoch import from_ms_opt, to_ms_opt
from chat_store.infrastructure.db.models.pagination import PaginationMetadataModel


def model_to_entity(model: PaginationMetadataModel) -> PaginationMetadata:
    return PaginationMetadata(
        conversation_id=model.conversation_id,
        oldest_message_id=model.oldest_message_id,
        has_more_messages=model.has_more_messages,
        last_sync_at=from_ms_opt(model.last_sync_at),
        total_messages_count=model.total_messages_count,
    )


def entity_to_row(entity: PaginationMetadata) -> dict[str, Any]:
    return {
        "conversation_id": entity.conversation_id,
        "oldest_message_id": entity.oldest_message_id,
        "has_more_messages": entity.has_more_messages,
        "last_sync_at": to_ms_opt(entity.last_sync_at),
        "total_messages_count": entity.total_messages_count,
    }
