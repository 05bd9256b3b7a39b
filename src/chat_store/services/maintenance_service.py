from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from chat_store.application.dto.stats import StoreStats
from chat_store.application.ports.clock import Clock, system_clock
from chat_store.application.uow import UnitOfWork
from chat_store.infrastructure.db.maintenance import SqliteMaintenance

logger = logging.getLogger(__name__)


async def cleanup_stale_optimistic(
    ttl: timedelta,
    max_retries: int,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> int:
    """Delete optimistic messages older than ``ttl`` that nothing will retry anymore."""
    threshold = clock.now() - ttl
    stale = await uow.messages.list_stale_optimistic(threshold)
    deleted = 0
    touched: set[str] = set()
    for message in stale:
        entry = await uow.outbox.get(message.temp_id) if message.temp_id else None
        if entry is not None and not entry.is_exhausted(max_retries):
            continue
        await uow.messages_w.delete(message.id)
        touched.add(message.conversation_id)
        deleted += 1
    now = clock.now()
    for conversation_id in touched:
        await uow.conversations_w.refresh_last_message(conversation_id, now)
    await uow.commit()
    if deleted:
        logger.warning("Cleaned up %d stale optimistic messages", deleted)
    return deleted


async def run_maintenance(
    ttl: timedelta,
    max_retries: int,
    uow: UnitOfWork,
    maintenance: SqliteMaintenance,
    clock: Clock = system_clock,
) -> int:
    deleted = await cleanup_stale_optimistic(ttl, max_retries, uow, clock)
    await maintenance.optimize()
    logger.info("Database maintenance completed")
    return deleted


async def store_stats(uow: UnitOfWork, maintenance: SqliteMaintenance) -> StoreStats:
    counts = await maintenance.table_counts()
    return StoreStats(
        conversations=counts["conversations"],
        messages=counts["messages"],
        outbox_pending=counts["message_outbox"],
        unsynced_messages=await uow.messages.count_unsynced(),
    )


async def database_info(maintenance: SqliteMaintenance) -> dict[str, Any]:
    return await maintenance.database_info()
