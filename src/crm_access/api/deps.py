"""
crm_access.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Expose the shared core components built at startup (authenticator, guard,
  assignment engine) from app.state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm_access.assignment.engine import AssignmentEngine
from crm_access.auth.authenticator import Authenticator
from crm_access.auth.guard import AuthorizationGuard
from crm_access.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `crm_access.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def authenticator_dep(request: Request) -> Authenticator:
    return request.app.state.authenticator  # type: ignore[attr-defined]


def guard_dep(request: Request) -> AuthorizationGuard:
    return request.app.state.guard  # type: ignore[attr-defined]


def assignment_engine_dep(request: Request) -> AssignmentEngine:
    return request.app.state.assignment_engine  # type: ignore[attr-defined]


# --- Module Notes -----------------------------------------------------------
# Components are stateless apart from their collaborators, so one instance per app
# is shared by all requests.
