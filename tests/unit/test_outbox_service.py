from __future__ import annotations

from datetime import timedelta

import pytest

from chat_store.application.exceptions import ConflictError, ValidationError
from chat_store.domain.value_objects.enums import MessageStatus, SyncStatus
from chat_store.services import outbox_service
from tests.conftest import BASE_TIME, make_entry, make_message


def _optimistic(temp_id: str = "tmp-1"):
    return make_message(
        message_id=f"optimistic_{temp_id}",
        temp_id=temp_id,
        status=MessageStatus.SENDING,
        sync_status=SyncStatus.PENDING,
    )


@pytest.mark.asyncio
async def test_enqueue_creates_fresh_entry(uow):
    entry = await outbox_service.enqueue(_optimistic(), uow)

    assert entry.retry_count == 0
    assert uow.outbox._entries["tmp-1"] == entry


@pytest.mark.asyncio
async def test_enqueue_is_idempotent(uow):
    first = await outbox_service.enqueue(_optimistic(), uow)
    second = await outbox_service.enqueue(_optimistic(), uow)

    assert first == second
    assert len(uow.outbox._entries) == 1


@pytest.mark.asyncio
async def test_enqueue_rejects_confirmed_message(uow):
    confirmed = make_message(message_id="srv-1", temp_id="tmp-1")
    uow.messages._store[confirmed.id] = confirmed

    with pytest.raises(ConflictError):
        await outbox_service.enqueue(_optimistic(), uow)
    assert uow.outbox._entries == {}


@pytest.mark.asyncio
async def test_enqueue_requires_temp_id(uow):
    with pytest.raises(ValidationError):
        await outbox_service.enqueue(make_message(), uow)


@pytest.mark.asyncio
async def test_dequeue_pending_oldest_first_and_below_ceiling(uow):
    await uow.outbox.add(make_entry("b", created_at=BASE_TIME + timedelta(seconds=2)))
    await uow.outbox.add(make_entry("a", created_at=BASE_TIME + timedelta(seconds=1)))
    await uow.outbox.add(make_entry("dead", retry_count=3))

    pending = await outbox_service.dequeue_pending(3, uow)

    assert [e.temp_id for e in pending] == ["a", "b"]


@pytest.mark.asyncio
async def test_mark_failed_records_default_error(uow, clock):
    await uow.outbox.add(make_entry())

    entry = await outbox_service.mark_failed("tmp-1", None, 3, uow, clock)

    assert entry.retry_count == 1
    assert entry.last_error == "Unknown error"
    assert entry.last_retry_at == clock.now()


@pytest.mark.asyncio
async def test_mark_failed_unknown_entry(uow, clock):
    assert await outbox_service.mark_failed("ghost", "x", 3, uow, clock) is None


@pytest.mark.asyncio
async def test_entry_never_pending_after_reaching_ceiling(uow, clock):
    uow.messages._store["optimistic_tmp-1"] = _optimistic()
    await uow.outbox.add(make_entry())

    for _ in range(3):
        pending = await outbox_service.dequeue_pending(3, uow)
        assert [e.temp_id for e in pending] == ["tmp-1"]
        await outbox_service.mark_failed("tmp-1", "offline", 3, uow, clock)

    assert await outbox_service.dequeue_pending(3, uow) == []
    assert uow.messages._store["optimistic_tmp-1"].status == MessageStatus.FAILED


@pytest.mark.asyncio
async def test_clear_failed_and_stats(uow):
    await uow.outbox.add(make_entry("ok"))
    await uow.outbox.add(make_entry("dead-1", retry_count=3))
    await uow.outbox.add(make_entry("dead-2", retry_count=5))

    stats = await outbox_service.stats(3, uow)
    assert (stats.total, stats.pending, stats.failed) == (3, 1, 2)

    assert await outbox_service.clear_failed(3, uow) == 2
    assert list(uow.outbox._entries) == ["ok"]


@pytest.mark.asyncio
async def test_list_for_conversation(uow):
    await uow.outbox.add(make_entry("a"))
    await uow.outbox.add(make_entry("b", conversation_id="conv-2"))

    entries = await outbox_service.list_for_conversation("conv-2", uow)

    assert [e.temp_id for e in entries] == ["b"]
