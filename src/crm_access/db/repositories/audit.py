"""
crm_access.db.repositories.audit

Repository for `AuditEvent` entities.

Responsibilities:
- Append audit events (authorization denials, auth failures, assignments).
- Query the audit trail for review.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_access.db.models import AuditEvent


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, *, actor: str, event_type: str, details: dict[str, Any]) -> AuditEvent:
        # Audit events are append-only (no update/delete) in normal operation.
        ev = AuditEvent(actor=actor, event_type=event_type, details=details)
        self._session.add(ev)
        await self._session.flush()
        return ev

    async def list_recent(
        self, *, event_type: str | None = None, limit: int = 200
    ) -> list[AuditEvent]:
        # Newest-first for UI consumption; reverse client-side if needed.
        stmt = select(AuditEvent).order_by(desc(AuditEvent.created_at)).limit(limit)
        if event_type is not None:
            stmt = stmt.where(AuditEvent.event_type == event_type)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Writes come from `audit.SqlAuditSink`, one short transaction per event.
