"""Housekeeping that needs raw access to the SQLite engine."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from chat_store.infrastructure.db.base import Base

logger = logging.getLogger(__name__)

_COUNTED_TABLES = ("conversations", "messages", "message_outbox")


class SqliteMaintenance:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def optimize(self) -> None:
        """VACUUM and ANALYZE. VACUUM refuses to run inside a transaction."""
        async with self._engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.execute(text("PRAGMA wal_checkpoint(TRUNCATE)"))
            await conn.execute(text("VACUUM"))
            await conn.execute(text("ANALYZE"))
        logger.info("Database optimization completed")

    async def table_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        async with self._engine.connect() as conn:
            for table in _COUNTED_TABLES:
                result = await conn.execute(text(f"SELECT COUNT(*) FROM {table}"))
                counts[table] = result.scalar_one()
        return counts

    async def database_info(self) -> dict[str, Any]:
        async with self._engine.connect() as conn:
            journal_mode = (await conn.execute(text("PRAGMA journal_mode"))).scalar_one()
            page_count = (await conn.execute(text("PRAGMA page_count"))).scalar_one()
            page_size = (await conn.execute(text("PRAGMA page_size"))).scalar_one()
            cache_size = (await conn.execute(text("PRAGMA cache_size"))).scalar_one()
        return {
            "journal_mode": journal_mode,
            "db_size_mb": round(page_count * page_size / (1024 * 1024), 2),
            "page_count": page_count,
            "page_size": page_size,
            "cache_size": cache_size,
        }

    async def clear_all(self) -> None:
        async with self._engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                await conn.execute(table.delete())
        logger.warning("All chat data cleared")
