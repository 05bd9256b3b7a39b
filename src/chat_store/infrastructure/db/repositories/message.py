from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_store.domain.entities.message import Message
from chat_store.domain.value_objects.enums import MessageStatus, SyncStatus
from chat_store.infrastructure.db.mappers import message as mapper
from chat_store.infrastructure.db.mappers._epoch import to_ms
from chat_store.infrastructure.db.models.message import MessageModel

_messages = MessageModel.__table__


def _query():
    # Core upserts bypass the identity map, so always refresh loaded rows
    return select(MessageModel).execution_options(populate_existing=True)


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: str) -> Message | None:
        result = await self._session.execute(_query().where(MessageModel.id == message_id))
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_by_temp_id(self, temp_id: str) -> Message | None:
        stmt = _query().where(MessageModel.temp_id == temp_id).limit(1)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_messages(
        self,
        conversation_id: str,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        stmt = _query().where(MessageModel.conversation_id == conversation_id)
        if before is not None:
            stmt = stmt.where(MessageModel.created_at < to_ms(before))
        stmt = stmt.order_by(
            MessageModel.created_at.desc(), MessageModel.id.desc(),
        ).limit(limit)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_latest(self, conversation_id: str) -> Message | None:
        latest = await self.list_messages(conversation_id, limit=1)
        return latest[0] if latest else None

    async def get_latest_synced(self, conversation_id: str) -> Message | None:
        stmt = (
            _query()
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.sync_status == SyncStatus.SYNCED,
            )
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_unsynced(self) -> list[Message]:
        stmt = (
            _query()
            .where(MessageModel.sync_status != SyncStatus.SYNCED)
            .order_by(MessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_stale_optimistic(self, threshold: datetime) -> list[Message]:
        stmt = (
            _query()
            .where(
                MessageModel.temp_id.is_not(None),
                MessageModel.sync_status != SyncStatus.SYNCED,
                MessageModel.created_at < to_ms(threshold),
            )
            .order_by(MessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count_unsynced(self) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.sync_status != SyncStatus.SYNCED)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, message: Message) -> None:
        await self.upsert_many([message])

    async def upsert_many(self, messages: list[Message]) -> None:
        if not messages:
            return
        # one row per id, last write wins
        unique = {m.id: m for m in messages}
        stmt = sqlite_insert(_messages).values(
            [mapper.entity_to_row(m) for m in unique.values()]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[_messages.c.id],
            set_={c.name: stmt.excluded[c.name] for c in _messages.columns if c.name != "id"},
        )
        await self._session.execute(stmt)

    async def delete(self, message_id: str) -> None:
        await self._session.execute(delete(MessageModel).where(MessageModel.id == message_id))

    async def delete_by_temp_id(self, temp_id: str) -> int:
        result = await self._session.execute(
            delete(MessageModel).where(MessageModel.temp_id == temp_id)
        )
        return result.rowcount

    async def update_status(self, message_id: str, status: str, ts: datetime) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(status=status, updated_at=to_ms(ts), sync_status=SyncStatus.SYNCED)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_failed_by_temp_id(self, temp_id: str, ts: datetime) -> None:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.temp_id == temp_id,
                MessageModel.sync_status != SyncStatus.SYNCED,
            )
            .values(
                status=MessageStatus.FAILED,
                sync_status=SyncStatus.FAILED,
                updated_at=to_ms(ts),
            )
        )
        await self._session.execute(stmt)

    async def mark_synced(self, message_ids: list[str], ts: datetime) -> None:
        if not message_ids:
            return
        stmt = (
            update(MessageModel)
            .where(MessageModel.id.in_(message_ids))
            .values(sync_status=SyncStatus.SYNCED, updated_at=to_ms(ts))
        )
        await self._session.execute(stmt)

    async def prune(self, conversation_id: str, keep_latest: int) -> int:
        keep = (
            select(MessageModel.id)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(keep_latest)
        )
        stmt = (
            delete(MessageModel)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.id.not_in(keep),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount
