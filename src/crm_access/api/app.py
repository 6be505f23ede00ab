"""
crm_access.api.app

FastAPI app factory for the CRM access service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Compose the core: audit sink, authenticator, guard, assignment engine.
- Map the `AccessError` taxonomy onto HTTP responses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_503_SERVICE_UNAVAILABLE

from crm_access.api.routers.assignments import router as assignments_router
from crm_access.api.routers.dev_auth import router as dev_auth_router
from crm_access.api.routers.health import router as health_router
from crm_access.api.routers.me import router as me_router
from crm_access.assignment.engine import AssignmentEngine
from crm_access.audit import SqlAuditSink
from crm_access.auth.authenticator import Authenticator
from crm_access.auth.guard import AuthorizationGuard
from crm_access.auth.jwt import JwtConfig
from crm_access.db.directory import SqlSettingsStore, SqlUserDirectory
from crm_access.db.init_db import init_db
from crm_access.db.session import create_engine, create_sessionmaker
from crm_access.errors import AccessError
from crm_access.observability.logging import configure_logging, get_logger
from crm_access.observability.middleware import RequestContextMiddleware
from crm_access.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level, env=settings.env)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        sessionmaker = create_sessionmaker(engine)
        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)

        directory = SqlUserDirectory(sessionmaker)
        audit = SqlAuditSink(sessionmaker)
        app.state.audit = audit
        app.state.authenticator = Authenticator(
            jwt_cfg=JwtConfig.from_settings(settings),
            directory=directory,
            audit=audit,
            lookup_timeout=settings.directory_timeout_seconds,
        )
        app.state.guard = AuthorizationGuard(audit=audit)
        app.state.assignment_engine = AssignmentEngine(
            directory=directory,
            settings_store=SqlSettingsStore(sessionmaker),
            audit=audit,
            max_attempts=settings.assignment_max_attempts,
            timeout=settings.assignment_timeout_seconds,
            retry_backoff=settings.assignment_retry_backoff_seconds,
            retry_backoff_cap=settings.assignment_retry_backoff_cap_seconds,
        )

        try:
            yield
        finally:
            await audit.drain()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="CRM Access & Assignment",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(me_router)
    app.include_router(assignments_router)

    @app.exception_handler(AccessError)
    async def _access_error(_: Request, exc: AccessError) -> JSONResponse:
        headers: dict[str, str] = {}
        if exc.http_status == HTTP_503_SERVICE_UNAVAILABLE:
            headers["Retry-After"] = str(settings.unavailable_retry_after_seconds)
        elif exc.http_status == HTTP_401_UNAUTHORIZED:
            headers["WWW-Authenticate"] = "Bearer"
        return JSONResponse(
            status_code=exc.http_status,
            content={"detail": exc.detail, "code": exc.code},
            headers=headers,
        )

    return app


# --- Module Notes -----------------------------------------------------------
# This is the single composition root; nothing else constructs core components
# for the HTTP service.
