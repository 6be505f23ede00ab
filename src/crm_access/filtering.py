"""
crm_access.filtering

Outbound response filtering by role.

Responsibilities:
- Strip restricted (financial and analytics) keys from payloads for non-admin roles.
- Leave admin payloads untouched.

Filtering walks lists (including lists of lists) and removes restricted keys from
each mapping it finds, dumping pydantic models and dataclasses to dicts first. Any
other non-scalar object raises `TypeError` rather than leaving the filter. It does
not descend into values nested inside a mapping.
Callers that return embedded shapes (e.g. a customer's `orderHistory`) must name
those keys via `nested=` to have the filter re-applied there.
"""

from __future__ import annotations

import dataclasses
import enum
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, time
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from crm_access.auth.models import Role
from crm_access.auth.permissions import can_access_financial_data

FINANCIAL_FIELDS = frozenset(
    {
        "creditLimit",
        "paymentTerms",
        "balance",
        "revenue",
        "totalSpent",
        "outstandingBalance",
        "creditScore",
        "paymentHistory",
        "accountBalance",
        "creditRating",
        "paymentStatus",
        "invoiceAmount",
        "totalRevenue",
    }
)

# Order-level analytics are admin-only as well.
ANALYTICS_FIELDS = frozenset({"analytics", "profitMargin", "costAnalysis"})

RESTRICTED_FIELDS = FINANCIAL_FIELDS | ANALYTICS_FIELDS

# Leaf values that cannot carry restricted keys. Anything else must be a mapping, a
# list, a pydantic model, or a dataclass; other objects are rejected, not passed on.
_SCALARS = (str, bytes, bool, int, float, Decimal, date, time, uuid.UUID, enum.Enum)


def filter_response(payload: Any, role: Role | str | None, *, nested: Iterable[str] = ()) -> Any:
    if can_access_financial_data(role):
        return payload
    return _strip(payload, frozenset(nested))


def _strip(payload: Any, nested: frozenset[str]) -> Any:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    elif dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        payload = dataclasses.asdict(payload)

    if isinstance(payload, list | tuple):
        return [_strip(item, nested) for item in payload]
    if isinstance(payload, Mapping):
        out: dict[str, Any] = {}
        for key, value in payload.items():
            if key in RESTRICTED_FIELDS:
                continue
            out[key] = _strip(value, nested) if key in nested else value
        return out
    if payload is None or isinstance(payload, _SCALARS):
        return payload
    raise TypeError(
        f"cannot filter {type(payload).__name__}; convert it to a mapping or pydantic model first"
    )


# --- Module Notes -----------------------------------------------------------
# Removal drops the key entirely (no null tombstone), so filtering twice is a no-op.
