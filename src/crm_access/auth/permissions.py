"""
crm_access.auth.permissions

Static role x entity x operation permission matrix.

Responsibilities:
- Hold the single source of truth for what each role may do.
- Answer `authorize` / `check_ownership` as pure, non-raising lookups.
- Describe a role's grants as flat permission names for clients.

Admin holds every operation on every entity. Assistants may create, read, update,
and search customers, orders, and messages (never delete), and have no access at
all to users or financial data.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from crm_access.auth.models import Entity, Operation, Role

_ALL_OPS = frozenset(Operation)
_NO_DELETE = frozenset({Operation.create, Operation.read, Operation.update, Operation.search})
_NONE: frozenset[Operation] = frozenset()

PERMISSION_MATRIX: Mapping[Role, Mapping[Entity, frozenset[Operation]]] = MappingProxyType(
    {
        Role.admin: MappingProxyType(
            {
                Entity.customers: _ALL_OPS,
                Entity.orders: _ALL_OPS,
                Entity.users: _ALL_OPS,
                Entity.financial_data: _ALL_OPS,
                Entity.messages: _ALL_OPS,
            }
        ),
        Role.assistant: MappingProxyType(
            {
                Entity.customers: _NO_DELETE,
                Entity.orders: _NO_DELETE,
                Entity.users: _NONE,
                Entity.financial_data: _NONE,
                Entity.messages: _NO_DELETE,
            }
        ),
    }
)

# Entities an assistant only sees through an ownership filter.
SCOPED_ENTITIES = frozenset({Entity.customers, Entity.orders, Entity.messages})


def _validate_matrix() -> None:
    # Every role must list every entity explicitly; a missing row would silently deny.
    for role in Role:
        row = PERMISSION_MATRIX.get(role)
        if row is None:
            raise RuntimeError(f"permission matrix missing role {role!s}")
        missing = set(Entity) - set(row)
        if missing:
            raise RuntimeError(f"permission matrix for {role!s} missing {sorted(missing)}")
    for entity in Entity:
        if not PERMISSION_MATRIX[Role.assistant][entity] <= PERMISSION_MATRIX[Role.admin][entity]:
            raise RuntimeError(f"assistant grants exceed admin grants on {entity!s}")


_validate_matrix()


def _coerce(enum_cls: type[Any], value: Any) -> Any:
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def authorize(role: Role | str | None, entity: Entity | str, operation: Operation | str) -> bool:
    r = _coerce(Role, role)
    e = _coerce(Entity, entity)
    op = _coerce(Operation, operation)
    if r is None or e is None or op is None:
        return False
    return op in PERMISSION_MATRIX[r][e]


def check_ownership(
    role: Role | str | None, identity_id: str | None, resource_owner_id: Any
) -> bool:
    r = _coerce(Role, role)
    if r is Role.admin:
        return True
    if r is Role.assistant:
        if identity_id is None or resource_owner_id is None:
            return False
        return str(identity_id) == str(resource_owner_id)
    return False


def can_access_financial_data(role: Role | str | None) -> bool:
    return authorize(role, Entity.financial_data, Operation.read)


def permissions_for(role: Role | str | None) -> list[str]:
    r = _coerce(Role, role)
    if r is None:
        return []
    return sorted(
        f"{op.value}_{entity.value}"
        for entity, ops in PERMISSION_MATRIX[r].items()
        for op in ops
    )


# --- Module Notes -----------------------------------------------------------
# The matrix is read-only at runtime (MappingProxyType + frozensets). Changing a
# grant is a code change, reviewed like any other.
