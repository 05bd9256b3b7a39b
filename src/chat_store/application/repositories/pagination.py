from __future__ import annotations

from typing import Protocol

from chat_store.domain.entities.pagination import PaginationMetadata


class PaginationRepository(Protocol):
    async def get(self, conversation_id: str) -> PaginationMetadata | None: ...

    async def save(self, metadata: PaginationMetadata) -> None: ...
