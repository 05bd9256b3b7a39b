"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request

from chat_store.application.ports.clock import Clock, system_clock
from chat_store.infrastructure.db.maintenance import SqliteMaintenance
from chat_store.infrastructure.db.uow import SqlAlchemyUoW
from chat_store.infrastructure.ws.manager import ConnectionManager
from chat_store.workers.sync_worker import SyncWorker


async def get_uow(request: Request) -> AsyncIterator[SqlAlchemyUoW]:
    async with request.app.state.session_factory() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def get_clock() -> Clock:
    return system_clock


ClockDep = Annotated[Clock, Depends(get_clock)]


def get_worker(request: Request) -> SyncWorker:
    return request.app.state.worker


WorkerDep = Annotated[SyncWorker, Depends(get_worker)]


def get_maintenance(request: Request) -> SqliteMaintenance:
    return request.app.state.maintenance


MaintenanceDep = Annotated[SqliteMaintenance, Depends(get_maintenance)]


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


ManagerDep = Annotated[ConnectionManager, Depends(get_manager)]
