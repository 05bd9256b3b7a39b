"""Shared test fixtures."""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from chat_store.application.dto.stats import OutboxStats
from chat_store.application.exceptions import BackendError
from chat_store.domain.entities.conversation import Conversation
from chat_store.domain.entities.message import Message
from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.domain.entities.pagination import PaginationMetadata
from chat_store.domain.value_objects.enums import (
    ConversationType,
    MessageStatus,
    MessageType,
    SyncStatus,
)

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


class FixedClock:
    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def make_conversation(
    *,
    conversation_id: str = "conv-1",
    updated_at: datetime = BASE_TIME,
    participant_ids: list[str] | None = None,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        type=ConversationType.DIRECT,
        participant_ids=participant_ids if participant_ids is not None else ["alice", "bob"],
        created_at=BASE_TIME,
        updated_at=updated_at,
    )


def make_message(
    *,
    message_id: str | None = None,
    conversation_id: str = "conv-1",
    sender_id: str = "alice",
    content: str = "hello",
    created_at: datetime | None = None,
    status: str = MessageStatus.SENT,
    temp_id: str | None = None,
    sync_status: str = SyncStatus.SYNCED,
) -> Message:
    ts = created_at or BASE_TIME
    return Message(
        id=message_id or f"msg-{next(_ids)}",
        conversation_id=conversation_id,
        sender_id=sender_id,
        type=MessageType.TEXT,
        status=status,
        content=content,
        temp_id=temp_id,
        created_at=ts,
        updated_at=ts,
        sync_status=sync_status,
    )


def make_entry(
    temp_id: str = "tmp-1",
    *,
    conversation_id: str = "conv-1",
    created_at: datetime = BASE_TIME,
    retry_count: int = 0,
) -> OutboxEntry:
    return OutboxEntry(
        temp_id=temp_id,
        conversation_id=conversation_id,
        content="hello",
        created_at=created_at,
        retry_count=retry_count,
    )


@dataclass
class FakeConversationReader:
    _store: dict[str, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        return self._store.get(conversation_id)

    async def list_all(self) -> list[Conversation]:
        convs = sorted(self._store.values(), key=lambda c: c.id)
        return sorted(convs, key=lambda c: c.updated_at, reverse=True)


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    _messages: FakeMessageReader | None = None

    async def upsert(self, conversation: Conversation) -> None:
        self._reader._store[conversation.id] = conversation

    async def touch_last_message(
        self,
        conversation_id: str,
        message_id: str,
        message_ts: datetime,
        now: datetime,
    ) -> None:
        conv = self._reader._store.get(conversation_id)
        if conv is None:
            return
        if conv.last_message_at is not None and conv.last_message_at > message_ts:
            return
        self._reader._store[conversation_id] = replace(
            conv, last_message_id=message_id, last_message_at=message_ts, updated_at=now,
        )

    async def refresh_last_message(self, conversation_id: str, now: datetime) -> None:
        conv = self._reader._store.get(conversation_id)
        if conv is None:
            return
        msgs = self._messages._newest_first(conversation_id) if self._messages else []
        latest = msgs[0] if msgs else None
        self._reader._store[conversation_id] = replace(
            conv,
            last_message_id=latest.id if latest else None,
            last_message_at=latest.created_at if latest else None,
            updated_at=now,
        )


@dataclass
class FakeMessageReader:
    _store: dict[str, Message] = field(default_factory=dict)

    async def get_by_id(self, message_id: str) -> Message | None:
        return self._store.get(message_id)

    async def get_by_temp_id(self, temp_id: str) -> Message | None:
        for m in self._store.values():
            if m.temp_id == temp_id:
                return m
        return None

    def _newest_first(self, conversation_id: str) -> list[Message]:
        msgs = [m for m in self._store.values() if m.conversation_id == conversation_id]
        return sorted(msgs, key=lambda m: (m.created_at, m.id), reverse=True)

    async def list_messages(
        self,
        conversation_id: str,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        msgs = self._newest_first(conversation_id)
        if before is not None:
            msgs = [m for m in msgs if m.created_at < before]
        return msgs[:limit]

    async def get_latest(self, conversation_id: str) -> Message | None:
        msgs = self._newest_first(conversation_id)
        return msgs[0] if msgs else None

    async def get_latest_synced(self, conversation_id: str) -> Message | None:
        msgs = [m for m in self._newest_first(conversation_id) if not m.is_optimistic]
        return msgs[0] if msgs else None

    async def list_unsynced(self) -> list[Message]:
        return sorted(
            (m for m in self._store.values() if m.is_optimistic),
            key=lambda m: m.created_at,
        )

    async def list_stale_optimistic(self, threshold: datetime) -> list[Message]:
        return [
            m for m in await self.list_unsynced()
            if m.temp_id is not None and m.created_at < threshold
        ]

    async def count_unsynced(self) -> int:
        return len(await self.list_unsynced())


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def upsert(self, message: Message) -> None:
        self._reader._store[message.id] = message

    async def upsert_many(self, messages: list[Message]) -> None:
        for m in messages:
            await self.upsert(m)

    async def delete(self, message_id: str) -> None:
        self._reader._store.pop(message_id, None)

    async def delete_by_temp_id(self, temp_id: str) -> int:
        ids = [m.id for m in self._reader._store.values() if m.temp_id == temp_id]
        for message_id in ids:
            del self._reader._store[message_id]
        return len(ids)

    async def update_status(self, message_id: str, status: str, ts: datetime) -> bool:
        m = self._reader._store.get(message_id)
        if m is None:
            return False
        self._reader._store[message_id] = replace(
            m, status=status, sync_status=SyncStatus.SYNCED, updated_at=ts,
        )
        return True

    async def mark_failed_by_temp_id(self, temp_id: str, ts: datetime) -> None:
        for m in list(self._reader._store.values()):
            if m.temp_id == temp_id and m.is_optimistic:
                self._reader._store[m.id] = replace(
                    m, status=MessageStatus.FAILED, sync_status=SyncStatus.FAILED, updated_at=ts,
                )

    async def mark_synced(self, message_ids: list[str], ts: datetime) -> None:
        for message_id in message_ids:
            m = self._reader._store.get(message_id)
            if m is not None:
                self._reader._store[message_id] = replace(
                    m, sync_status=SyncStatus.SYNCED, updated_at=ts,
                )

    async def prune(self, conversation_id: str, keep_latest: int) -> int:
        doomed = self._reader._newest_first(conversation_id)[keep_latest:]
        for m in doomed:
            del self._reader._store[m.id]
        return len(doomed)


@dataclass
class FakeOutbox:
    _entries: dict[str, OutboxEntry] = field(default_factory=dict)

    async def add(self, entry: OutboxEntry) -> None:
        self._entries[entry.temp_id] = entry

    async def get(self, temp_id: str) -> OutboxEntry | None:
        return self._entries.get(temp_id)

    def _oldest_first(self) -> list[OutboxEntry]:
        return sorted(self._entries.values(), key=lambda e: (e.created_at, e.temp_id))

    async def fetch_pending(self, max_retries: int, limit: int | None = None) -> list[OutboxEntry]:
        pending = [e for e in self._oldest_first() if e.retry_count < max_retries]
        return pending if limit is None else pending[:limit]

    async def list_for_conversation(self, conversation_id: str) -> list[OutboxEntry]:
        return [e for e in self._oldest_first() if e.conversation_id == conversation_id]

    async def mark_failed(self, temp_id: str, error: str, ts: datetime) -> int | None:
        entry = self._entries.get(temp_id)
        if entry is None:
            return None
        entry = replace(
            entry, retry_count=entry.retry_count + 1, last_error=error, last_retry_at=ts,
        )
        self._entries[temp_id] = entry
        return entry.retry_count

    async def remove(self, temp_id: str) -> None:
        self._entries.pop(temp_id, None)

    async def clear_failed(self, max_retries: int) -> int:
        doomed = [t for t, e in self._entries.items() if e.retry_count >= max_retries]
        for temp_id in doomed:
            del self._entries[temp_id]
        return len(doomed)

    async def stats(self, max_retries: int) -> OutboxStats:
        failed = sum(1 for e in self._entries.values() if e.retry_count >= max_retries)
        return OutboxStats(
            total=len(self._entries),
            pending=len(self._entries) - failed,
            failed=failed,
        )


@dataclass
class FakePagination:
    _store: dict[str, PaginationMetadata] = field(default_factory=dict)

    async def get(self, conversation_id: str) -> PaginationMetadata | None:
        return self._store.get(conversation_id)

    async def save(self, metadata: PaginationMetadata) -> None:
        self._store[metadata.conversation_id] = metadata


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    outbox: FakeOutbox = field(default_factory=FakeOutbox)
    pagination: FakePagination = field(default_factory=FakePagination)
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations, self.messages)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    conv = make_conversation()
    uow.conversations._store[conv.id] = conv
    return uow


@dataclass
class FakeBackend:
    """Scriptable stand-in for the remote chat backend."""
    reachable: bool = True
    fail_sends: bool = False
    remote: dict[str, list[Message]] = field(default_factory=dict)
    sent: list[OutboxEntry] = field(default_factory=list)
    fetch_calls: list[tuple[str, str | None]] = field(default_factory=list)
    broken_conversations: set[str] = field(default_factory=set)
    confirmed_conversation_id: str | None = None
    confirmed_created_at: datetime | None = None

    async def send_message(self, entry: OutboxEntry) -> Message:
        self.sent.append(entry)
        if self.fail_sends:
            raise BackendError("boom", status_code=500)
        return Message(
            id=f"server-{entry.temp_id}",
            conversation_id=self.confirmed_conversation_id or entry.conversation_id,
            sender_id="alice",
            type=entry.type,
            status=MessageStatus.SENT,
            content=entry.content,
            temp_id=entry.temp_id,
            created_at=self.confirmed_created_at or entry.created_at,
            updated_at=self.confirmed_created_at or entry.created_at,
        )

    async def fetch_messages(
        self,
        conversation_id: str,
        *,
        after: str | None = None,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        self.fetch_calls.append((conversation_id, after))
        if conversation_id in self.broken_conversations:
            raise BackendError("conversation unavailable", status_code=503)
        msgs = self.remote.get(conversation_id, [])
        if after is not None:
            ids = [m.id for m in msgs]
            if after in ids:
                msgs = msgs[ids.index(after) + 1:]
        return msgs[:limit]

    async def is_reachable(self) -> bool:
        return self.reachable


@dataclass
class RecordingNotifier:
    events: list[tuple[str, Message]] = field(default_factory=list)

    async def publish(self, event_type: str, message: Message) -> None:
        self.events.append((event_type, message))


@pytest_asyncio.fixture
async def engine():
    from chat_store.infrastructure.db.session import create_engine, init_db

    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    from chat_store.infrastructure.db.session import create_sessionmaker

    return create_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
