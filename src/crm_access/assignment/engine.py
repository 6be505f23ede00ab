"""
crm_access.assignment.engine

Round-robin assignment engine.

Responsibilities:
- Select the assistant after the one recorded in the rotation cursor, over the
  current active pool in a stable order.
- Advance the cursor with a compare-and-set on the value that was read, retrying
  with a fresh read (after a short jittered backoff) when another writer got there
  first.
- Keep "nobody to assign to" and "could not record the assignment" as separate
  failures, since callers retry them differently.

Rotation rules:
- Empty pool -> `NoAvailableAssistants`; the cursor is left as it was.
- Cursor missing, or naming someone no longer in the pool -> first in the pool.
- Otherwise -> the assistant after the cursor, wrapping around.
- A single-assistant pool always yields that assistant (the cursor is still written).
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from crm_access.audit import emit
from crm_access.auth.models import Role
from crm_access.errors import AssignmentPersistenceFailed, NoAvailableAssistants
from crm_access.observability.logging import get_logger
from crm_access.ports import AuditSink, SettingsStore, UserDirectory, UserRecord

log = get_logger(__name__)

ROTATION_KEY = "lastAssignedAssistant"

AssignmentReason = Literal["order", "reorder"]


def select_next(pool_ids: Sequence[str], cursor: str | None) -> str:
    """
    Pure rotation step. `pool_ids` must be non-empty.
    """

    if len(pool_ids) == 1 or cursor is None:
        return pool_ids[0]
    try:
        index = pool_ids.index(cursor)
    except ValueError:
        return pool_ids[0]
    return pool_ids[(index + 1) % len(pool_ids)]


@dataclass(frozen=True, slots=True)
class AssignmentStats:
    total_assistants: int
    assistant_ids: list[str]
    last_assigned_id: str | None
    last_assigned_username: str | None
    last_assigned_in_pool: bool


class AssignmentEngine:
    def __init__(
        self,
        *,
        directory: UserDirectory,
        settings_store: SettingsStore,
        audit: AuditSink,
        max_attempts: int = 16,
        timeout: float | None = None,
        retry_backoff: float = 0.01,
        retry_backoff_cap: float = 0.2,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._directory = directory
        self._store = settings_store
        self._audit = audit
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._retry_backoff = retry_backoff
        self._retry_backoff_cap = retry_backoff_cap

    async def assign_next_assistant(
        self,
        *,
        actor_id: str | None = None,
        order_ref: str | None = None,
        reason: AssignmentReason = "order",
    ) -> str:
        try:
            async with asyncio.timeout(self._timeout):
                assistant_id, attempts = await self._assign()
        except TimeoutError as e:
            log.warning("assignment.timeout", timeout=self._timeout)
            raise AssignmentPersistenceFailed("Assignment timed out") from e

        log.info(
            "assignment.selected",
            assistant_id=assistant_id,
            attempts=attempts,
            order_ref=order_ref,
            reason=reason,
        )
        emit(
            self._audit,
            "ORDER_ASSIGNED",
            actor_id,
            {
                "assistant_id": assistant_id,
                "order_ref": order_ref,
                "reason": reason,
                "attempts": attempts,
            },
        )
        return assistant_id

    async def assignment_stats(self) -> AssignmentStats:
        pool = await self._load_pool()
        cursor = await self._read_cursor()
        current = next((u for u in pool if u.id == cursor), None)
        return AssignmentStats(
            total_assistants=len(pool),
            assistant_ids=[u.id for u in pool],
            last_assigned_id=cursor,
            last_assigned_username=current.username if current else None,
            last_assigned_in_pool=current is not None,
        )

    async def _assign(self) -> tuple[str, int]:
        for attempt in range(1, self._max_attempts + 1):
            pool = await self._load_pool()
            if not pool:
                log.warning("assignment.no_assistants")
                raise NoAvailableAssistants()

            # The raw cursor is kept as the CAS expectation even when it names someone
            # outside the pool; select_next treats that case as "start from the top".
            cursor = await self._read_cursor()
            selected = select_next([u.id for u in pool], cursor)

            if await self._advance(cursor, selected):
                return selected, attempt
            log.info("assignment.cursor_conflict", attempt=attempt, expected=cursor)
            if attempt < self._max_attempts:
                await self._backoff(attempt)

        raise AssignmentPersistenceFailed(
            f"Rotation cursor still contended after {self._max_attempts} attempts"
        )

    async def _backoff(self, attempt: int) -> None:
        # Full jitter, doubling per attempt up to the cap.
        ceiling = min(self._retry_backoff_cap, self._retry_backoff * 2 ** (attempt - 1))
        if ceiling > 0:
            await asyncio.sleep(random.uniform(0, ceiling))

    async def _load_pool(self) -> list[UserRecord]:
        try:
            users = await self._directory.find_active_users_by_role(Role.assistant.value)
        except Exception as e:
            log.exception("assignment.pool_fetch_failed")
            raise AssignmentPersistenceFailed("Failed to fetch available assistants") from e
        # Directory contract already filters; re-check so a lax adapter cannot leak.
        return [u for u in users if u.active and u.role == Role.assistant.value]

    async def _read_cursor(self) -> str | None:
        try:
            return await self._store.get_setting(ROTATION_KEY)
        except Exception as e:
            log.exception("assignment.cursor_read_failed")
            raise AssignmentPersistenceFailed("Failed to get last assigned assistant") from e

    async def _advance(self, expected: str | None, selected: str) -> bool:
        try:
            return await self._store.compare_and_set_setting(ROTATION_KEY, expected, selected)
        except Exception as e:
            log.exception("assignment.cursor_write_failed")
            raise AssignmentPersistenceFailed("Failed to update last assigned assistant") from e


# --- Module Notes -----------------------------------------------------------
# Nothing is cached between calls: pool membership and the cursor are re-read on
# every attempt, so assistants joining or leaving take effect immediately.
