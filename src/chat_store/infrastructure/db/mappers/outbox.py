from __future__ import annotations

from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.infrastructure.db.mappers._epoch import from_ms, from_ms_opt, to_ms, to_ms_opt
from chat_store.infrastructure.db.models.outbox import OutboxMessageModel


def model_to_entity(model: OutboxMessageModel) -> OutboxEntry:
    return OutboxEntry(
        temp_id=model.temp_id,
        conversation_id=model.conversation_id,
        content=model.content,
        type=model.type,
        media_local_path=model.media_local_path,
        created_at=from_ms(model.created_at),
        retry_count=model.retry_count,
        last_error=model.last_error,
        last_retry_at=from_ms_opt(model.last_retry_at),
    )


def entity_to_model(entity: OutboxEntry) -> OutboxMessageModel:
    return OutboxMessageModel(
        temp_id=entity.temp_id,
        conversation_id=entity.conversation_id,
        content=entity.content,
        type=str(entity.type),
        media_local_path=entity.media_local_path,
        created_at=to_ms(entity.created_at),
        retry_count=entity.retry_count,
        last_error=entity.last_error,
        last_retry_at=to_ms_opt(entity.last_retry_at),
    )
