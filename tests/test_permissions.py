"""
tests.test_permissions

Permission matrix invariants and ownership checks.
"""

from __future__ import annotations

import itertools

import pytest

from crm_access.auth.models import Entity, Operation, Role
from crm_access.auth.permissions import (
    PERMISSION_MATRIX,
    authorize,
    can_access_financial_data,
    check_ownership,
    permissions_for,
)

ALL_PAIRS = list(itertools.product(Entity, Operation))

ASSISTANT_GRANTS = {
    (e, op)
    for e in (Entity.customers, Entity.orders, Entity.messages)
    for op in (Operation.create, Operation.read, Operation.update, Operation.search)
}


@pytest.mark.parametrize(("entity", "operation"), ALL_PAIRS)
def test_admin_allowed_everything(entity: Entity, operation: Operation) -> None:
    assert authorize(Role.admin, entity, operation) is True


@pytest.mark.parametrize(("entity", "operation"), ALL_PAIRS)
def test_assistant_only_holds_explicit_grants(entity: Entity, operation: Operation) -> None:
    assert authorize(Role.assistant, entity, operation) is ((entity, operation) in ASSISTANT_GRANTS)


def test_assistant_never_deletes_customers_or_orders() -> None:
    assert not authorize("assistant", "customers", "delete")
    assert not authorize("assistant", "orders", "delete")


@pytest.mark.parametrize("operation", list(Operation))
def test_assistant_has_no_financial_or_user_access(operation: Operation) -> None:
    assert not authorize(Role.assistant, Entity.financial_data, operation)
    assert not authorize(Role.assistant, Entity.users, operation)


def test_admin_superset_of_assistant() -> None:
    for entity in Entity:
        assert PERMISSION_MATRIX[Role.assistant][entity] <= PERMISSION_MATRIX[Role.admin][entity]


@pytest.mark.parametrize(
    ("role", "entity", "operation"),
    [
        ("admin", "invoices", "read"),
        ("admin", "customers", "export"),
        ("superuser", "customers", "read"),
        (None, "customers", "read"),
        ("admin", None, None),
        (["admin"], "customers", "read"),
        ("ADMIN", "customers", "read"),
    ],
)
def test_unknown_inputs_deny_without_raising(role, entity, operation) -> None:
    assert authorize(role, entity, operation) is False


def test_matrix_is_read_only() -> None:
    with pytest.raises(TypeError):
        PERMISSION_MATRIX[Role.assistant][Entity.users] = frozenset(Operation)  # type: ignore[index]


def test_check_ownership_scenarios() -> None:
    assert check_ownership("assistant", "u1", "u1") is True
    assert check_ownership("assistant", "u1", "u2") is False
    assert check_ownership("admin", "u1", "u1") is True
    assert check_ownership("admin", "u1", "u2") is True
    assert check_ownership("auditor", "u1", "u1") is False
    assert check_ownership("assistant", "u1", None) is False


def test_permissions_for_lists_role_grants() -> None:
    assistant = permissions_for("assistant")
    assert "create_customers" in assistant
    assert "delete_customers" not in assistant
    assert not any(p.endswith("_financial_data") for p in assistant)
    assert len(permissions_for(Role.admin)) == len(Entity) * len(Operation)
    assert permissions_for("nobody") == []


def test_financial_access_is_admin_only() -> None:
    assert can_access_financial_data("admin")
    assert not can_access_financial_data("assistant")
    assert not can_access_financial_data(None)
