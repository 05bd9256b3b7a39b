"""SQLite columns hold timestamps as integer milliseconds since the epoch."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def to_ms(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (ts - EPOCH) // _ONE_MS


def from_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def to_ms_opt(ts: datetime | None) -> int | None:
    return to_ms(ts) if ts is not None else None


def from_ms_opt(ms: int | None) -> datetime | None:
    return from_ms(ms) if ms is not None else None


def join_csv(values: list[str] | None) -> str | None:
    return ",".join(values) if values else None


def split_csv(raw: str | None) -> list[str] | None:
    return [v for v in raw.split(",") if v] if raw else None
