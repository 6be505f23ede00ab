"""
tests.conftest

Shared fixtures and in-memory fakes for the port protocols.

Responsibilities:
- Provide fake user directory / settings store / audit sink implementations.
- Provide a JWT config and token minting helper.
- Provide a temporary SQLite database for repository and API tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from crm_access.auth.jwt import JwtConfig
from crm_access.db.init_db import init_db
from crm_access.db.session import create_engine, create_sessionmaker
from crm_access.ports import UserRecord
from crm_access.settings import Settings


@dataclass
class FakeDirectory:
    users: list[UserRecord] = field(default_factory=list)
    lookups: int = 0
    fail_with: Exception | None = None
    delay: float = 0.0

    def add(self, user_id: str, role: str = "assistant", active: bool = True) -> None:
        self.users.append(UserRecord(id=user_id, role=role, active=active, username=user_id))

    async def find_active_users_by_role(self, role: str) -> Sequence[UserRecord]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return [u for u in self.users if u.role == role and u.active]

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        self.lookups += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return next((u for u in self.users if u.id == user_id), None)


@dataclass
class FakeSettingsStore:
    values: dict[str, str] = field(default_factory=dict)
    # Yield to the loop between read and write so concurrent callers interleave.
    yield_on_read: bool = False
    always_conflict: bool = False
    fail_writes: bool = False
    writes: int = 0

    async def get_setting(self, key: str) -> str | None:
        value = self.values.get(key)
        if self.yield_on_read:
            await asyncio.sleep(0)
        return value

    async def compare_and_set_setting(
        self, key: str, expected_old_value: str | None, new_value: str
    ) -> bool:
        if self.fail_writes:
            raise ConnectionError("store unavailable")
        if self.always_conflict or self.values.get(key) != expected_old_value:
            return False
        self.values[key] = new_value
        self.writes += 1
        return True


@dataclass
class RecordingAuditSink:
    events: list[tuple[str, str | None, dict[str, Any]]] = field(default_factory=list)

    def record(self, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
        self.events.append((event_kind, actor_id, details))

    def kinds(self) -> list[str]:
        return [e[0] for e in self.events]


class BrokenAuditSink:
    def record(self, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
        raise RuntimeError("audit backend down")


@pytest.fixture
def jwt_cfg() -> JwtConfig:
    return JwtConfig(alg="HS256", issuer="crm-access", audience="crm-api", secret="test-secret")


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def store() -> FakeSettingsStore:
    return FakeSettingsStore()


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'crm-test.db'}",
        jwt_secret="test-secret",
    )


@pytest_asyncio.fixture
async def db_engine(test_settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_engine(test_settings)
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_sessionmaker(db_engine)
