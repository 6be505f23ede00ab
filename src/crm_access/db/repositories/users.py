from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.db.models import User


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        username: str,
        role: str,
        is_active: bool = True,
        email: str | None = None,
        user_id: str | None = None,
    ) -> User:
        user = User(username=username, role=role, is_active=is_active, email=email)
        if user_id is not None:
            user.id = user_id
        self._session.add(user)
        await self._session.flush()
        return user

    async def get(self, user_id: str) -> User | None:
        return await self._session.get(User, user_id)

    async def list_active_by_role(self, role: str) -> list[User]:
        # Stable order (creation time, then id) keeps the rotation reproducible.
        stmt = (
            select(User)
            .where(User.role == role, User.is_active.is_(True))
            .order_by(User.created_at, User.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def set_active(self, user_id: str, active: bool) -> None:
        user = await self._session.get(User, user_id, with_for_update=True)
        if user is None:
            return
        user.is_active = active
