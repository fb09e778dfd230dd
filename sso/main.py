from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from sso.api.deps import get_key_ring
from sso.api.errors import REQUEST_ID_HEADER, register_exception_handlers
from sso.api.routers import auth, devices, federation, users, webauthn
from sso.infrastructure.background import PeriodicWorker
from sso.infrastructure.db.engine import create_schema, get_engine
from sso.infrastructure.db.repositories.ephemeral_state_repository import (
    SqlEphemeralStateRepository,
)
from sso.infrastructure.db.seeds.seed_accounts_defaults import seed_accounts_defaults
from sso.shared.config import Settings, get_settings


logger = logging.getLogger(__name__)


def _purge_expired_state(engine):
    def _purge() -> None:
        removed = SqlEphemeralStateRepository(engine).purge_expired()
        logger.info("maintenance: purged expired state rows=%s", removed)

    return _purge


def build_workers(settings: Settings, *, engine, key_ring) -> list[PeriodicWorker]:
    workers = []
    if engine is not None and settings.state_purge_interval_seconds > 0:
        workers.append(
            PeriodicWorker(
                "state-purge",
                interval_seconds=settings.state_purge_interval_seconds,
                task=_purge_expired_state(engine),
            )
        )
    if settings.jwt_rotation_interval_hours > 0:
        workers.append(
            PeriodicWorker(
                "key-rotation",
                interval_seconds=settings.jwt_rotation_interval_hours * 3600,
                task=key_ring.rotate,
            )
        )
    return workers


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    engine = get_engine(settings.postgres_dsn) if settings.postgres_dsn else None

    if engine is not None and settings.db_auto_create:
        create_schema(engine)
        seed_accounts_defaults(engine)

    workers = build_workers(settings, engine=engine, key_ring=get_key_ring())
    for worker in workers:
        worker.start()

    yield

    for worker in workers:
        worker.stop()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(title="SSO API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(auth.router)
    app.include_router(federation.router)
    app.include_router(webauthn.router)
    app.include_router(users.router)
    app.include_router(devices.router)
    return app


app = create_app()
