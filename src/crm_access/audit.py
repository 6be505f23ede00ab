"""
crm_access.audit

Audit sinks for authorization decisions and assignment events.

Responsibilities:
- Provide a structlog-backed sink and a DB-backed sink (`audit_events` table).
- Keep auditing fire-and-forget: a failing sink is logged, never raised into the
  operation that produced the event.
"""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crm_access.db.repositories.audit import AuditRepo
from crm_access.observability.logging import get_logger
from crm_access.ports import AuditSink

log = get_logger(__name__)


def emit(sink: AuditSink, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
    # Audit is best-effort: the primary operation's outcome never depends on it.
    try:
        sink.record(event_kind, actor_id, details)
    except Exception:
        log.exception("audit.record_failed", event_kind=event_kind, actor=actor_id)


class LogAuditSink:
    def record(self, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
        log.info("audit", event_kind=event_kind, actor=actor_id, details=details)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class SqlAuditSink:
    """
    Persists events on a background task, each in its own short transaction, so
    request handlers never wait on (or roll back with) audit writes.

    `record` may be called from a worker thread (sync dependencies, threadpool
    handlers); the write is then handed to the loop the sink was bound to.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._loop = loop or _running_loop()
        self._pending: set[asyncio.Task[None]] = set()

    def record(self, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
        args = (event_kind, actor_id or "anonymous", dict(details))
        running = _running_loop()
        if running is not None:
            self._loop = self._loop or running
            self._schedule(*args)
            return
        if self._loop is None:
            raise RuntimeError("SqlAuditSink is not bound to an event loop")
        self._loop.call_soon_threadsafe(self._schedule, *args)

    def _schedule(self, event_kind: str, actor: str, details: dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(self._write(event_kind, actor, details))
        # Hold a reference until done; the loop only keeps weak refs to tasks.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, event_kind: str, actor: str, details: dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                await AuditRepo(session).add(actor=actor, event_type=event_kind, details=details)
                await session.commit()
        except Exception:
            log.exception("audit.write_failed", event_kind=event_kind, actor=actor)

    async def drain(self) -> None:
        # One loop turn lets writes handed over from worker threads become tasks.
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending))


# --- Module Notes -----------------------------------------------------------
# `SqlAuditSink.drain` is awaited on app shutdown (and by tests) so queued events
# are flushed before the engine is disposed.
