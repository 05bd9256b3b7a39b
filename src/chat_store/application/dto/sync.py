from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class SyncReport:
    """Counters for one sync run."""

    sent: int = 0
    failed: int = 0
    skipped: int = 0
    fetched: int = 0
    conversations: int = 0
    failed_conversations: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WorkerStatus:
    online: bool
    in_progress: bool
    running: bool
    interval_seconds: float
    last_sync_at: datetime | None = None
