from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_store.api.middleware.request_log import RequestLogMiddleware
from chat_store.api.v1.routers import (
    conversations,
    health,
    messages,
    outbox,
    sync,
    ws,
)
from chat_store.application.exceptions import (
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from chat_store.application.ports.backend import ChatBackend
from chat_store.config import settings
from chat_store.infrastructure.backend.http_client import HttpChatBackend
from chat_store.infrastructure.db.maintenance import SqliteMaintenance
from chat_store.infrastructure.db.session import create_engine, create_sessionmaker, init_db
from chat_store.infrastructure.ws.manager import ConnectionManager
from chat_store.workers.sync_worker import SyncWorker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    engine = create_engine(app.state.database_url, echo=settings.DB_ECHO)
    await init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_sessionmaker(engine)
    app.state.maintenance = SqliteMaintenance(engine)

    backend: ChatBackend | None = app.state.backend
    owned_backend: HttpChatBackend | None = None
    if backend is None:
        owned_backend = HttpChatBackend(
            settings.BACKEND_BASE_URL,
            access_token=settings.BACKEND_ACCESS_TOKEN,
            timeout=settings.BACKEND_TIMEOUT_SECONDS,
        )
        backend = owned_backend

    worker = SyncWorker(
        app.state.session_factory,
        backend,
        notifier=app.state.manager,
    )
    app.state.worker = worker
    if app.state.run_worker:
        worker.start()

    yield

    await worker.stop()
    if owned_backend is not None:
        await owned_backend.aclose()
    await engine.dispose()
    logger.info("Chat store shut down")


def create_app(
    *,
    database_url: str | None = None,
    backend: ChatBackend | None = None,
    run_worker: bool = True,
) -> FastAPI:
    app = FastAPI(
        title="Pulse Chat Store",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.database_url = database_url or settings.database_url
    app.state.backend = backend
    app.state.run_worker = run_worker
    app.state.manager = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(outbox.router)
    app.include_router(sync.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(BackendError)
    async def _backend(_req: Request, exc: BackendError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": exc.detail})
