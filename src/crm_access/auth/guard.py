"""
crm_access.auth.guard

Authorization guard.

Responsibilities:
- Decide allow/deny for an identity, entity, and operation (plus an optional owner).
- Produce the immutable `AuthorizationContext` that downstream query code consumes.
- Record an audit event for every denial before reporting it.
"""

from __future__ import annotations

from typing import Any

from crm_access.audit import emit
from crm_access.auth.models import (
    AuthorizationContext,
    Entity,
    Identity,
    Operation,
    OwnershipFilter,
    Role,
)
from crm_access.auth.permissions import SCOPED_ENTITIES, authorize, check_ownership
from crm_access.errors import Forbidden, Unauthenticated
from crm_access.observability.logging import get_logger
from crm_access.ports import AuditSink

log = get_logger(__name__)

_OWNER_FIELDS: dict[Entity, tuple[str, ...]] = {
    Entity.customers: ("created_by",),
    Entity.orders: ("created_by", "received_by"),
    Entity.messages: ("assigned_to",),
}


def ownership_filter(
    identity: Identity | None, entity: Entity | str = Entity.customers
) -> OwnershipFilter | None:
    # Admin is unrestricted. Entities outside SCOPED_ENTITIES are not row-scoped.
    if identity is None or identity.role is not Role.assistant:
        return None
    try:
        e = Entity(entity)
    except ValueError:
        return None
    if e not in SCOPED_ENTITIES:
        return None
    return OwnershipFilter(
        owner_id=identity.id,
        fields=_OWNER_FIELDS[e],
        via="customer" if e is Entity.messages else None,
    )


class AuthorizationGuard:
    def __init__(self, *, audit: AuditSink) -> None:
        self._audit = audit

    def authorize(
        self,
        identity: Identity | None,
        entity: Entity | str,
        operation: Operation | str,
    ) -> bool:
        if identity is None:
            self._deny(None, entity, operation, reason="unauthenticated")
            return False
        if not authorize(identity.role, entity, operation):
            self._deny(identity, entity, operation, reason="forbidden")
            return False
        return True

    def check_ownership(self, identity: Identity | None, resource_owner_id: Any) -> bool:
        if identity is None:
            return False
        return check_ownership(identity.role, identity.id, resource_owner_id)

    def enforce(
        self,
        identity: Identity | None,
        entity: Entity | str,
        operation: Operation | str,
        *,
        resource_owner_id: Any = None,
    ) -> AuthorizationContext:
        if identity is None:
            self._deny(None, entity, operation, reason="unauthenticated")
            raise Unauthenticated()
        if not authorize(identity.role, entity, operation):
            self._deny(identity, entity, operation, reason="forbidden")
            raise Forbidden(f"Not authorized to perform {operation} on {entity}")
        if resource_owner_id is not None and not check_ownership(
            identity.role, identity.id, resource_owner_id
        ):
            self._deny(identity, entity, operation, reason="ownership")
            raise Forbidden("You can only access your own resources")

        # authorize() succeeded, so both values coerce cleanly here.
        e = Entity(entity)
        return AuthorizationContext(
            identity=identity,
            entity=e,
            operation=Operation(operation),
            ownership=ownership_filter(identity, e),
        )

    def _deny(
        self,
        identity: Identity | None,
        entity: Entity | str,
        operation: Operation | str,
        *,
        reason: str,
    ) -> None:
        details = {
            "entity": str(entity),
            "operation": str(operation),
            "reason": reason,
            "role": identity.role.value if identity else None,
        }
        log.warning("auth.denied", actor=identity.id if identity else None, **details)
        emit(self._audit, "PERMISSION_DENIED", identity.id if identity else None, details)


# --- Module Notes -----------------------------------------------------------
# The guard never mutates request state; handlers receive the context value and pass
# it to `db.scoping.scope_query` explicitly.
