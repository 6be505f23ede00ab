"""
crm_access.db.directory

SQL-backed implementations of the core's collaborator ports.

Responsibilities:
- `SqlUserDirectory`: user lookups for the authenticator and assignment engine.
- `SqlSettingsStore`: key/value reads and compare-and-set writes for the rotation cursor.

Each call runs in its own short session so that the core never holds a transaction
open across suspension points it does not control.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm_access.db.models import User
from crm_access.db.repositories.settings import SettingRepo
from crm_access.db.repositories.users import UserRepo
from crm_access.observability.logging import get_logger
from crm_access.ports import UserRecord

log = get_logger(__name__)


def _to_record(user: User) -> UserRecord:
    return UserRecord(id=user.id, role=user.role, active=user.is_active, username=user.username)


class SqlUserDirectory:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_active_users_by_role(self, role: str) -> Sequence[UserRecord]:
        async with self._session_factory() as session:
            users = await UserRepo(session).list_active_by_role(role)
            return [_to_record(u) for u in users]

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        async with self._session_factory() as session:
            user = await UserRepo(session).get(user_id)
            return _to_record(user) if user is not None else None


class SqlSettingsStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_setting(self, key: str) -> str | None:
        async with self._session_factory() as session:
            setting = await SettingRepo(session).get(key)
            return setting.value if setting is not None else None

    async def compare_and_set_setting(
        self, key: str, expected_old_value: str | None, new_value: str
    ) -> bool:
        try:
            async with self._session_factory() as session, session.begin():
                return await SettingRepo(session).compare_and_set(
                    key=key, expected=expected_old_value, new=new_value
                )
        except IntegrityError:
            # Lost the race to create the record; the caller re-reads and retries.
            log.info("settings.cas_insert_conflict", key=key)
            return False


# --- Module Notes -----------------------------------------------------------
# Other persistence errors propagate; the assignment engine turns them into
# `AssignmentPersistenceFailed`.
