"""
crm_access.db.repositories.settings

Repository for `SystemSetting` key/value records.

Responsibilities:
- Read a setting by key.
- Conditionally write a setting in a single statement (compare-and-set), so that
  concurrent writers racing on the same key cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.db.models import SystemSetting


class SettingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, key: str) -> SystemSetting | None:
        return await self._session.get(SystemSetting, key, populate_existing=True)

    async def compare_and_set(self, *, key: str, expected: str | None, new: str) -> bool:
        now = datetime.utcnow()
        if expected is None:
            # First write: insert only when no record exists yet. A concurrent insert
            # that slips past NOT EXISTS surfaces as IntegrityError on the primary key.
            stmt = insert(SystemSetting).from_select(
                ["key", "value", "updated_at"],
                select(literal(key), literal(new), literal(now)).where(
                    ~select(SystemSetting.key)
                    .where(SystemSetting.key == key)
                    .correlate(None)
                    .exists()
                ),
            )
        else:
            stmt = (
                update(SystemSetting)
                .where(SystemSetting.key == key, SystemSetting.value == expected)
                .values(value=new, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        result = await self._session.execute(stmt)
        return result.rowcount == 1


# --- Module Notes -----------------------------------------------------------
# The rotation cursor (`lastAssignedAssistant`) is the main user of compare_and_set;
# see `assignment.engine`.
