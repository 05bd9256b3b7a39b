from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class OutboxStats:
    total: int
    pending: int
    failed: int


@dataclass(frozen=True, slots=True)
class StoreStats:
    conversations: int
    messages: int
    outbox_pending: int
    unsynced_messages: int
