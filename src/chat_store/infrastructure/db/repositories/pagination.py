from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_store.domain.entities.pagination import PaginationMetadata
from chat_store.infrastructure.db.mappers import pagination as mapper
from chat_store.infrastructure.db.models.pagination import PaginationMetadataModel

_pagination = PaginationMetadataModel.__table__


class PaginationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, conversation_id: str) -> PaginationMetadata | None:
        stmt = (
            select(PaginationMetadataModel)
            .where(PaginationMetadataModel.conversation_id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def save(self, metadata: PaginationMetadata) -> None:
        row = mapper.entity_to_row(metadata)
        stmt = sqlite_insert(_pagination).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_pagination.c.conversation_id],
            set_={k: v for k, v in row.items() if k != "conversation_id"},
        )
        await self._session.execute(stmt)
