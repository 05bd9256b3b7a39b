from __future__ import annotations

from dataclasses import asdict
from datetime import timedelta

from fastapi import APIRouter, Query

from chat_store.api.deps import ClockDep, MaintenanceDep, UoWDep, WorkerDep
from chat_store.api.v1.schemas.common import CountResponse
from chat_store.api.v1.schemas.sync import (
    StoreStatsResponse,
    SyncReportResponse,
    SyncStatusResponse,
)
from chat_store.config import settings
from chat_store.services import maintenance_service

router = APIRouter(prefix="/api/v1", tags=["sync"])


@router.post("/sync", response_model=SyncReportResponse)
async def trigger_sync(
    worker: WorkerDep,
    conversation_id: str | None = Query(None),
) -> SyncReportResponse:
    if conversation_id is not None:
        report = await worker.sync_conversation(conversation_id)
    else:
        report = await worker.sync_now()
    if report is None:
        return SyncReportResponse(started=False)
    return SyncReportResponse(started=True, **asdict(report))


@router.get("/sync/status", response_model=SyncStatusResponse)
async def sync_status(worker: WorkerDep) -> SyncStatusResponse:
    return SyncStatusResponse.model_validate(worker.status(), from_attributes=True)


@router.get("/stats", response_model=StoreStatsResponse)
async def store_stats(uow: UoWDep, maintenance: MaintenanceDep) -> StoreStatsResponse:
    stats = await maintenance_service.store_stats(uow, maintenance)
    info = await maintenance_service.database_info(maintenance)
    return StoreStatsResponse(**asdict(stats), database=info)


@router.post("/maintenance", response_model=CountResponse)
async def run_maintenance(
    uow: UoWDep,
    maintenance: MaintenanceDep,
    clock: ClockDep,
) -> CountResponse:
    deleted = await maintenance_service.run_maintenance(
        timedelta(seconds=settings.OPTIMISTIC_TTL_SECONDS),
        settings.OUTBOX_MAX_RETRIES,
        uow,
        maintenance,
        clock,
    )
    return CountResponse(count=deleted)
