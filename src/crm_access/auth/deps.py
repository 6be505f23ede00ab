"""
crm_access.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Identity` via the `Authenticator`.
- Enforce the permission matrix via reusable dependency factories that hand the
  handler an `AuthorizationContext`.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from crm_access.api.deps import authenticator_dep, guard_dep
from crm_access.auth.authenticator import Authenticator
from crm_access.auth.guard import AuthorizationGuard
from crm_access.auth.models import AuthorizationContext, Entity, Identity, Operation
from crm_access.observability.logging import bind_actor

_bearer = HTTPBearer(auto_error=False)


async def get_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    authenticator: Authenticator = Depends(authenticator_dep),
) -> Identity:
    # AuthenticationError subclasses propagate to the app's AccessError handler (401).
    identity = await authenticator.authenticate(creds.credentials if creds else None)
    bind_actor(actor_id=identity.id, role=identity.role.value)
    return identity


def require_permission(entity: Entity, operation: Operation):
    async def _dep(
        identity: Identity = Depends(get_identity),
        guard: AuthorizationGuard = Depends(guard_dep),
    ) -> AuthorizationContext:
        # Forbidden propagates to the AccessError handler (403).
        return guard.enforce(identity, entity, operation)

    return _dep


# --- Module Notes -----------------------------------------------------------
# Routers declare `ctx: AuthorizationContext = Depends(require_permission(...))` and
# pass `ctx` to `db.scoping.scope_query` for assistant-scoped reads.
