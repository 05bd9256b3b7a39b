from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_store.domain.entities.conversation import Conversation
from chat_store.infrastructure.db.mappers import conversation as mapper
from chat_store.infrastructure.db.mappers._epoch import to_ms
from chat_store.infrastructure.db.models.conversation import ConversationModel
from chat_store.infrastructure.db.models.message import MessageModel

_conversations = ConversationModel.__table__


def _query():
    return select(ConversationModel).execution_options(populate_existing=True)


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        result = await self._session.execute(
            _query().where(ConversationModel.id == conversation_id)
        )
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_all(self) -> list[Conversation]:
        stmt = _query().order_by(
            ConversationModel.updated_at.desc(), ConversationModel.id,
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, conversation: Conversation) -> None:
        stmt = sqlite_insert(_conversations).values(**mapper.entity_to_row(conversation))
        stmt = stmt.on_conflict_do_update(
            index_elements=[_conversations.c.id],
            set_={
                c.name: stmt.excluded[c.name]
                for c in _conversations.columns
                if c.name != "id"
            },
        )
        await self._session.execute(stmt)

    async def touch_last_message(
        self,
        conversation_id: str,
        message_id: str,
        message_ts: datetime,
        now: datetime,
    ) -> None:
        ts = to_ms(message_ts)
        stmt = (
            update(ConversationModel)
            .where(
                ConversationModel.id == conversation_id,
                ConversationModel.last_message_at.is_(None)
                | (ConversationModel.last_message_at <= ts),
            )
            .values(last_message_id=message_id, last_message_at=ts, updated_at=to_ms(now))
        )
        await self._session.execute(stmt)

    async def refresh_last_message(self, conversation_id: str, now: datetime) -> None:
        latest = await self._session.execute(
            select(MessageModel.id, MessageModel.created_at)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(1)
        )
        row = latest.first()
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(
                last_message_id=row.id if row else None,
                last_message_at=row.created_at if row else None,
                updated_at=to_ms(now),
            )
        )
        await self._session.execute(stmt)
