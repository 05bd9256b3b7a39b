from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_store.application.dto.stats import OutboxStats
from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.infrastructure.db.mappers import outbox as mapper
from chat_store.infrastructure.db.mappers._epoch import to_ms
from chat_store.infrastructure.db.models.outbox import OutboxMessageModel


def _query():
    return select(OutboxMessageModel).execution_options(populate_existing=True)


class OutboxRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, entry: OutboxEntry) -> None:
        self._session.add(mapper.entity_to_model(entry))
        await self._session.flush()

    async def get(self, temp_id: str) -> OutboxEntry | None:
        result = await self._session.execute(
            _query().where(OutboxMessageModel.temp_id == temp_id)
        )
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def fetch_pending(
        self, max_retries: int, limit: int | None = None,
    ) -> list[OutboxEntry]:
        stmt = (
            _query()
            .where(OutboxMessageModel.retry_count < max_retries)
            .order_by(OutboxMessageModel.created_at.asc(), OutboxMessageModel.temp_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(r) for r in result.scalars().all()]

    async def list_for_conversation(self, conversation_id: str) -> list[OutboxEntry]:
        stmt = (
            _query()
            .where(OutboxMessageModel.conversation_id == conversation_id)
            .order_by(OutboxMessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(r) for r in result.scalars().all()]

    async def mark_failed(self, temp_id: str, error: str, ts: datetime) -> int | None:
        stmt = (
            update(OutboxMessageModel)
            .where(OutboxMessageModel.temp_id == temp_id)
            .values(
                retry_count=OutboxMessageModel.retry_count + 1,
                last_error=error,
                last_retry_at=to_ms(ts),
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        result = await self._session.execute(
            select(OutboxMessageModel.retry_count).where(
                OutboxMessageModel.temp_id == temp_id
            )
        )
        return result.scalar_one_or_none()

    async def remove(self, temp_id: str) -> None:
        await self._session.execute(
            delete(OutboxMessageModel).where(OutboxMessageModel.temp_id == temp_id)
        )

    async def clear_failed(self, max_retries: int) -> int:
        result = await self._session.execute(
            delete(OutboxMessageModel).where(OutboxMessageModel.retry_count >= max_retries)
        )
        return result.rowcount

    async def stats(self, max_retries: int) -> OutboxStats:
        total = await self._count()
        failed = await self._count(OutboxMessageModel.retry_count >= max_retries)
        return OutboxStats(total=total, pending=total - failed, failed=failed)

    async def _count(self, *criteria) -> int:
        stmt = select(func.count()).select_from(OutboxMessageModel)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self._session.execute(stmt)
        return result.scalar_one()
