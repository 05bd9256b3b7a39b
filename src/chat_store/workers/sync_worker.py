"""Sync worker: drains the outbox to the backend and pulls new messages."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_store.application.dto.sync import SyncReport, WorkerStatus
from chat_store.application.exceptions import BackendError
from chat_store.application.ports.backend import ChatBackend
from chat_store.application.ports.clock import Clock, system_clock
from chat_store.application.ports.notifier import EventNotifier, NullNotifier
from chat_store.config import settings
from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.domain.value_objects.enums import MessageStatus
from chat_store.infrastructure.db.uow import SqlAlchemyUoW
from chat_store.services import (
    conversation_service,
    maintenance_service,
    message_service,
    outbox_service,
)

logger = logging.getLogger(__name__)


class SyncWorker:
    """Keeps the local store and the backend in step.

    A run first delivers every pending outbox entry, then pulls messages newer
    than the latest synced one for each cached conversation. Runs happen on a
    fixed interval and as soon as the backend becomes reachable again. At most
    one run is active; a trigger that arrives during a run is dropped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        backend: ChatBackend,
        *,
        notifier: EventNotifier | None = None,
        clock: Clock = system_clock,
        interval: float = settings.SYNC_INTERVAL_SECONDS,
        connectivity_interval: float = settings.CONNECTIVITY_CHECK_SECONDS,
        max_retries: int = settings.OUTBOX_MAX_RETRIES,
        batch_size: int = settings.OUTBOX_BATCH_SIZE,
        fetch_limit: int = settings.SYNC_FETCH_LIMIT,
        conversation_delay: float = settings.SYNC_CONVERSATION_DELAY_SECONDS,
        optimistic_ttl: float = settings.OPTIMISTIC_TTL_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._backend = backend
        self._notifier = notifier or NullNotifier()
        self._clock = clock
        self._interval = interval
        self._connectivity_interval = connectivity_interval
        self._max_retries = max_retries
        self._batch_size = batch_size
        self._fetch_limit = fetch_limit
        self._conversation_delay = conversation_delay
        self._optimistic_ttl = timedelta(seconds=optimistic_ttl)

        self._lock = asyncio.Lock()
        self._tasks: list[asyncio.Task[None]] = []
        self._online = False
        self._in_progress = False
        self._last_sync_at = None

    @asynccontextmanager
    async def _uow(self) -> AsyncIterator[SqlAlchemyUoW]:
        async with self._session_factory() as session:
            async with SqlAlchemyUoW(session) as uow:
                yield uow

    # lifecycle

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._periodic_loop(), name="sync-periodic"),
            asyncio.create_task(self._connectivity_loop(), name="sync-connectivity"),
        ]
        logger.info(
            "Sync worker started (interval=%.1fs, max_retries=%d, batch=%d)",
            self._interval, self._max_retries, self._batch_size,
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Sync worker stopped")

    def status(self) -> WorkerStatus:
        return WorkerStatus(
            online=self._online,
            in_progress=self._in_progress,
            running=bool(self._tasks),
            interval_seconds=self._interval,
            last_sync_at=self._last_sync_at,
        )

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sync_now()
            except Exception:
                logger.exception("Periodic sync failed")

    async def _connectivity_loop(self) -> None:
        while True:
            try:
                await self.check_connectivity()
            except Exception:
                logger.exception("Connectivity check failed")
            await asyncio.sleep(self._connectivity_interval)

    # triggers

    async def check_connectivity(self) -> bool:
        """Probe the backend; syncs right away on an offline -> online transition."""
        was_online = self._online
        online = await self._probe()
        if online and not was_online:
            logger.info("Backend reachable, starting sync")
            await self._run_exclusive()
        elif was_online and not online:
            logger.warning("Backend unreachable, sync paused")
        return online

    async def sync_now(self) -> SyncReport | None:
        """Run a full sync. Returns None when offline or a run is already active."""
        if not await self._probe():
            logger.info("Backend unreachable, sync skipped")
            return None
        return await self._run_exclusive()

    async def sync_conversation(self, conversation_id: str) -> SyncReport | None:
        async with self._uow() as uow:
            await conversation_service.get_conversation(conversation_id, uow)
        if self._lock.locked():
            logger.info("Sync in progress, skipping conversation %s", conversation_id)
            return None
        async with self._lock:
            report = SyncReport()
            await self._sync_conversation(conversation_id, report)
            return report

    async def _probe(self) -> bool:
        self._online = await self._backend.is_reachable()
        return self._online

    async def _run_exclusive(self) -> SyncReport | None:
        if self._lock.locked():
            logger.info("Sync already in progress, skipping")
            return None
        async with self._lock:
            self._in_progress = True
            try:
                report = SyncReport()
                await self.drain_outbox(report)
                await self._sync_all_conversations(report)
                async with self._uow() as uow:
                    await maintenance_service.cleanup_stale_optimistic(
                        self._optimistic_ttl, self._max_retries, uow, self._clock,
                    )
                self._last_sync_at = self._clock.now()
            finally:
                self._in_progress = False
        logger.info(
            "Sync finished: sent=%d failed=%d fetched=%d conversations=%d",
            report.sent, report.failed, report.fetched, report.conversations,
        )
        return report

    # outbox

    async def drain_outbox(self, report: SyncReport) -> None:
        async with self._uow() as uow:
            entries = await outbox_service.dequeue_pending(
                self._max_retries, uow, limit=self._batch_size,
            )
        if entries:
            logger.info("Sending %d pending messages", len(entries))

        for entry in entries:
            if entry.is_exhausted(self._max_retries):
                logger.warning("Outbox entry %s exceeded max retries, skipping", entry.temp_id)
                report.skipped += 1
                continue
            try:
                await self._deliver(entry, report)
            except BackendError as exc:
                logger.warning("Send of %s failed: %s", entry.temp_id, exc.detail)
                await self._record_failure(entry, exc.detail, report)
            except Exception as exc:
                # counts toward the retry ceiling like a rejected send
                logger.exception("Failed to process outbox entry %s", entry.temp_id)
                await self._record_failure(entry, f"{type(exc).__name__}: {exc}", report)

    async def _deliver(self, entry: OutboxEntry, report: SyncReport) -> None:
        server_message = await self._backend.send_message(entry)
        async with self._uow() as uow:
            confirmed = await message_service.confirm_message(
                entry.temp_id, server_message, uow, self._clock,
            )
        report.sent += 1
        await self._notifier.publish("message.confirmed", confirmed)

    async def _record_failure(self, entry: OutboxEntry, error: str, report: SyncReport) -> None:
        report.failed += 1
        try:
            async with self._uow() as uow:
                updated = await message_service.fail_message(
                    entry.temp_id, error, uow, self._clock,
                    max_retries=self._max_retries,
                )
                if updated is None or not updated.is_exhausted(self._max_retries):
                    return
                failed = await message_service.get_by_temp_id(entry.temp_id, uow)
        except Exception:
            logger.exception("Could not record failure of outbox entry %s", entry.temp_id)
            return
        if failed is not None and failed.status == MessageStatus.FAILED:
            await self._notifier.publish("message.failed", failed)

    # pull

    async def _sync_all_conversations(self, report: SyncReport) -> None:
        async with self._uow() as uow:
            conversations = await conversation_service.list_conversations(uow)

        for index, conversation in enumerate(conversations):
            if index and self._conversation_delay:
                await asyncio.sleep(self._conversation_delay)
            try:
                await self._sync_conversation(conversation.id, report)
            except Exception:
                logger.exception("Sync of conversation %s failed", conversation.id)
                report.failed_conversations.append(conversation.id)

    async def _sync_conversation(self, conversation_id: str, report: SyncReport) -> None:
        async with self._uow() as uow:
            latest = await uow.messages.get_latest_synced(conversation_id)

        fetched = await self._backend.fetch_messages(
            conversation_id,
            after=latest.id if latest else None,
            limit=self._fetch_limit,
        )
        report.conversations += 1
        if not fetched:
            return

        async with self._uow() as uow:
            stored = await message_service.save_messages(fetched, uow, self._clock)
            await conversation_service.record_sync(conversation_id, uow, self._clock)
        report.fetched += len(fetched)
        logger.debug("Fetched %d messages for %s", len(fetched), conversation_id)

        for message in stored:
            await self._notifier.publish("message.created", message)


async def run_sync_worker() -> None:
    from chat_store.infrastructure.backend.http_client import HttpChatBackend
    from chat_store.infrastructure.db.maintenance import SqliteMaintenance
    from chat_store.infrastructure.db.session import AsyncSessionLocal, engine, init_db

    await init_db(engine)
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            await maintenance_service.run_maintenance(
                timedelta(seconds=settings.OPTIMISTIC_TTL_SECONDS),
                settings.OUTBOX_MAX_RETRIES,
                uow,
                SqliteMaintenance(engine),
            )

    backend = HttpChatBackend(
        settings.BACKEND_BASE_URL,
        access_token=settings.BACKEND_ACCESS_TOKEN,
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
    )
    worker = SyncWorker(AsyncSessionLocal, backend)
    worker.start()

    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await worker.stop()
        await backend.aclose()
        await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_sync_worker())


if __name__ == "__main__":
    main()
