"""
crm_access.auth.models

Auth domain models.

Responsibilities:
- Define the closed vocabularies (`Role`, `Entity`, `Operation`).
- Define the authenticated identity type (`Identity`) injected into endpoints.
- Define the immutable per-request `AuthorizationContext` and its `OwnershipFilter`.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class Role(enum.StrEnum):
    admin = "admin"
    assistant = "assistant"


class Entity(enum.StrEnum):
    customers = "customers"
    orders = "orders"
    users = "users"
    financial_data = "financial_data"
    messages = "messages"


class Operation(enum.StrEnum):
    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    search = "search"


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Authenticated caller identity, resolved from the user directory.
    """

    id: str
    role: Role
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin


@dataclass(frozen=True, slots=True)
class OwnershipFilter:
    """
    Scoping predicate: a resource is visible when any of `fields` equals `owner_id`.

    `via` names an intermediate relation when ownership is indirect (messages are
    owned through the customer they belong to). In-memory checks through `matches`
    expect the related object to be embedded under that key.
    """

    owner_id: str
    fields: tuple[str, ...] = ("created_by",)
    via: str | None = None

    def matches(self, resource: Mapping[str, Any] | Any) -> bool:
        target = _get(resource, self.via) if self.via else resource
        if target is None:
            return False
        return any(_same_id(_get(target, f), self.owner_id) for f in self.fields)


@dataclass(frozen=True, slots=True)
class AuthorizationContext:
    identity: Identity
    entity: Entity
    operation: Operation
    ownership: OwnershipFilter | None = None

    @property
    def restrict_financial_data(self) -> bool:
        return not self.identity.is_admin


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _same_id(value: Any, owner_id: str) -> bool:
    return value is not None and str(value) == owner_id


# --- Module Notes -----------------------------------------------------------
# Keep these models free of I/O; they are shared by the API, the guard, and the
# query scoping helpers in `db.scoping`.
