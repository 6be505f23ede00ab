"""
crm_access.ports

Collaborator interfaces consumed by the core.

Responsibilities:
- Describe the user directory, settings store, and audit sink as typing Protocols.
- Define the plain `UserRecord` the directory hands back.

SQL-backed implementations live in `db.directory` and `audit`; tests supply
in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class UserRecord:
    # `role` is the raw stored value; the authenticator validates it.
    id: str
    role: str
    active: bool
    username: str | None = None


class UserDirectory(Protocol):
    async def find_active_users_by_role(self, role: str) -> Sequence[UserRecord]:
        """Active users with `role`, in a stable order (creation order, then id)."""
        ...

    async def find_user_by_id(self, user_id: str) -> UserRecord | None: ...


class SettingsStore(Protocol):
    async def get_setting(self, key: str) -> str | None: ...

    async def compare_and_set_setting(
        self, key: str, expected_old_value: str | None, new_value: str
    ) -> bool:
        """
        Atomically set `key` to `new_value` iff its current value equals
        `expected_old_value` (None meaning "no record yet"). Returns False on mismatch.
        """
        ...


class AuditSink(Protocol):
    def record(self, event_kind: str, actor_id: str | None, details: dict[str, Any]) -> None:
        """Fire-and-forget; must never raise into the caller."""
        ...


# --- Module Notes -----------------------------------------------------------
# The core depends only on these shapes, never on SQLAlchemy sessions directly.
