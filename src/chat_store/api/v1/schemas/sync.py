from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class SyncReportResponse(BaseModel):
    started: bool
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    fetched: int = 0
    conversations: int = 0
    failed_conversations: list[str] = []


class SyncStatusResponse(BaseModel):
    online: bool
    in_progress: bool
    running: bool
    interval_seconds: float
    last_sync_at: datetime | None

    model_config = {"from_attributes": True}


class StoreStatsResponse(BaseModel):
    conversations: int
    messages: int
    outbox_pending: int
    unsynced_messages: int
    database: dict[str, Any]
