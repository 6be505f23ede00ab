"""
crm_access.db.scoping

Apply an `AuthorizationContext` to SQLAlchemy queries.

Responsibilities:
- Turn the context's ownership filter into a WHERE clause for the matching model.
- Leave admin queries (no ownership filter) untouched.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, Select, false, or_, select

from crm_access.auth.models import AuthorizationContext, OwnershipFilter
from crm_access.db.models import Customer


def ownership_clause(flt: OwnershipFilter, model: type[Any]) -> ColumnElement[bool]:
    if flt.via == "customer":
        owned_customers = select(Customer.id).where(
            or_(*(getattr(Customer, f) == flt.owner_id for f in flt.fields))
        )
        return model.customer_id.in_(owned_customers)

    columns = [getattr(model, f) for f in flt.fields if hasattr(model, f)]
    if not columns:
        # A filter the model cannot express must hide everything, not expose everything.
        return false()
    return or_(*(c == flt.owner_id for c in columns))


def scope_query(stmt: Select[Any], model: type[Any], ctx: AuthorizationContext) -> Select[Any]:
    if ctx.ownership is None:
        return stmt
    return stmt.where(ownership_clause(ctx.ownership, model))


# --- Module Notes -----------------------------------------------------------
# Used by business handlers (outside this package) after `AuthorizationGuard.enforce`.
