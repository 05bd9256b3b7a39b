"""REST API tests using an in-memory UoW via dependency override."""
from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from chat_store.api.deps import get_clock, get_maintenance, get_uow, get_worker
from chat_store.app import create_app
from chat_store.application.dto.sync import SyncReport, WorkerStatus
from chat_store.domain.value_objects.enums import SyncStatus
from tests.conftest import BASE_TIME, FakeUoW, FixedClock, make_conversation, make_entry, make_message


class FakeWorker:
    def __init__(self) -> None:
        self.calls: list[str | None] = []
        self.busy = False

    async def sync_now(self) -> SyncReport | None:
        self.calls.append(None)
        return None if self.busy else SyncReport(sent=2, fetched=5, conversations=1)

    async def sync_conversation(self, conversation_id: str) -> SyncReport | None:
        self.calls.append(conversation_id)
        return SyncReport(fetched=1, conversations=1)

    def status(self) -> WorkerStatus:
        return WorkerStatus(online=True, in_progress=False, running=True, interval_seconds=300)


class FakeMaintenance:
    async def table_counts(self) -> dict[str, int]:
        return {"conversations": 1, "messages": 3, "message_outbox": 1}

    async def database_info(self) -> dict:
        return {"journal_mode": "wal", "page_count": 2, "page_size": 4096}


@pytest.fixture
def app_with_uow():
    app = create_app(run_worker=False)
    uow = FakeUoW()
    uow.conversations._store["conv-1"] = make_conversation()
    worker = FakeWorker()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.dependency_overrides[get_clock] = lambda: FixedClock()
    app.dependency_overrides[get_worker] = lambda: worker
    app.dependency_overrides[get_maintenance] = lambda: FakeMaintenance()
    return app, uow, worker


@pytest.fixture
def client(app_with_uow):
    app, _, _ = app_with_uow
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def uow(app_with_uow):
    _, uow, _ = app_with_uow
    return uow


@pytest.fixture
def worker(app_with_uow):
    _, _, worker = app_with_uow
    return worker


def _seed_messages(uow: FakeUoW, count: int) -> None:
    for i in range(count):
        m = make_message(message_id=f"m{i}", created_at=BASE_TIME + timedelta(seconds=i))
        uow.messages._store[m.id] = m


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "abc123"})
    assert resp.headers["X-Request-ID"] == "abc123"


def test_list_conversations(client):
    resp = client.get("/api/v1/conversations")
    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == ["conv-1"]


def test_put_conversation(client, uow):
    resp = client.put(
        "/api/v1/conversations/conv-2",
        json={"type": "group", "participant_ids": ["a", "b", "c"], "name": "Trip"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["type"] == "group"
    assert data["name"] == "Trip"
    assert uow.conversations._store["conv-2"].participant_ids == ["a", "b", "c"]


def test_get_conversation_not_found(client):
    resp = client.get("/api/v1/conversations/missing")
    assert resp.status_code == 404
    assert "missing" in resp.json()["detail"]


def test_list_messages_with_next_cursor(client, uow):
    _seed_messages(uow, 5)

    resp = client.get("/api/v1/conversations/conv-1/messages", params={"limit": 2})
    assert resp.status_code == 200
    data = resp.json()
    assert [m["id"] for m in data["items"]] == ["m4", "m3"]
    assert data["next_cursor"] == "m3"

    resp = client.get(
        "/api/v1/conversations/conv-1/messages",
        params={"limit": 2, "cursor": data["next_cursor"]},
    )
    assert [m["id"] for m in resp.json()["items"]] == ["m2", "m1"]


def test_list_messages_last_page_has_no_cursor(client, uow):
    _seed_messages(uow, 2)

    resp = client.get("/api/v1/conversations/conv-1/messages", params={"limit": 5})
    assert resp.json()["next_cursor"] is None


def test_list_messages_unknown_cursor(client):
    resp = client.get("/api/v1/conversations/conv-1/messages", params={"cursor": "nope"})
    assert resp.status_code == 404


def test_send_message(client, uow):
    resp = client.post(
        "/api/v1/conversations/conv-1/messages",
        json={"sender_id": "alice", "content": "hi there"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["id"].startswith("optimistic_")
    assert data["status"] == "sending"
    assert data["sync_status"] == "pending"
    assert data["temp_id"] in uow.outbox._entries


def test_send_message_unknown_conversation(client):
    resp = client.post(
        "/api/v1/conversations/ghost/messages",
        json={"sender_id": "alice", "content": "hi"},
    )
    assert resp.status_code == 404


def test_send_message_invalid_type(client):
    resp = client.post(
        "/api/v1/conversations/conv-1/messages",
        json={"sender_id": "alice", "type": "hologram"},
    )
    assert resp.status_code == 422


def test_update_status(client, uow):
    m = make_message(message_id="m1", sync_status=SyncStatus.PENDING)
    uow.messages._store[m.id] = m

    resp = client.patch("/api/v1/messages/m1/status", json={"status": "read"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "read"
    assert resp.json()["sync_status"] == "synced"


def test_update_status_unknown_message(client):
    resp = client.patch("/api/v1/messages/ghost/status", json={"status": "read"})
    assert resp.status_code == 404


def test_update_status_of_queued_message_conflicts(client, uow):
    m = make_message(
        message_id="optimistic_tmp-1", temp_id="tmp-1", sync_status=SyncStatus.PENDING,
    )
    uow.messages._store[m.id] = m

    resp = client.patch("/api/v1/messages/optimistic_tmp-1/status", json={"status": "read"})
    assert resp.status_code == 409
    assert "tmp-1" in resp.json()["detail"]


def test_outbox_endpoints(client, uow):
    uow.outbox._entries["a"] = make_entry("a")
    uow.outbox._entries["dead"] = make_entry("dead", retry_count=3)

    resp = client.get("/api/v1/outbox")
    assert [e["temp_id"] for e in resp.json()] == ["a"]

    resp = client.get("/api/v1/outbox", params={"conversation_id": "conv-1"})
    assert {e["temp_id"] for e in resp.json()} == {"a", "dead"}

    resp = client.get("/api/v1/outbox/stats")
    assert resp.json() == {"total": 2, "pending": 1, "failed": 1}

    resp = client.delete("/api/v1/outbox/failed")
    assert resp.json() == {"count": 1}
    assert list(uow.outbox._entries) == ["a"]


def test_trigger_sync(client, worker):
    resp = client.post("/api/v1/sync")
    assert resp.status_code == 200
    data = resp.json()
    assert data["started"] is True
    assert data["sent"] == 2
    assert data["fetched"] == 5

    resp = client.post("/api/v1/sync", params={"conversation_id": "conv-1"})
    assert resp.json()["fetched"] == 1
    assert worker.calls == [None, "conv-1"]


def test_trigger_sync_while_busy(client, worker):
    worker.busy = True
    resp = client.post("/api/v1/sync")
    assert resp.json()["started"] is False


def test_sync_status(client):
    resp = client.get("/api/v1/sync/status")
    assert resp.json() == {
        "online": True,
        "in_progress": False,
        "running": True,
        "interval_seconds": 300.0,
        "last_sync_at": None,
    }


def test_store_stats(client, uow):
    m = make_message(sync_status=SyncStatus.PENDING)
    uow.messages._store[m.id] = m

    resp = client.get("/api/v1/stats")
    data = resp.json()
    assert data["messages"] == 3
    assert data["unsynced_messages"] == 1
    assert data["database"]["journal_mode"] == "wal"
