"""
crm_access.api.routers.assignments

Order-assignment endpoints.

Responsibilities:
- Hand out the next assistant for a new order or reorder.
- Expose rotation statistics to admins.

Assignment failures are raised as `AssignmentError` subclasses and rendered by the
app-level handler: no assistants -> 503 with Retry-After, persistence -> 500.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crm_access.api.deps import assignment_engine_dep
from crm_access.assignment.engine import AssignmentEngine
from crm_access.auth.deps import require_permission
from crm_access.auth.models import AuthorizationContext, Entity, Operation

router = APIRouter(prefix="/v1/assignments", tags=["assignments"])


class AssignmentRequest(BaseModel):
    order_ref: str | None = Field(default=None, max_length=128)
    reason: Literal["order", "reorder"] = "order"


class AssignmentResponse(BaseModel):
    assistant_id: str


class AssignmentStatsResponse(BaseModel):
    total_assistants: int
    assistant_ids: list[str]
    last_assigned_id: str | None
    last_assigned_username: str | None
    last_assigned_in_pool: bool


@router.post("", response_model=AssignmentResponse)
async def assign_next(
    body: AssignmentRequest,
    ctx: AuthorizationContext = Depends(require_permission(Entity.orders, Operation.create)),
    engine: AssignmentEngine = Depends(assignment_engine_dep),
) -> AssignmentResponse:
    assistant_id = await engine.assign_next_assistant(
        actor_id=ctx.identity.id, order_ref=body.order_ref, reason=body.reason
    )
    return AssignmentResponse(assistant_id=assistant_id)


@router.get(
    "/stats",
    response_model=AssignmentStatsResponse,
    dependencies=[Depends(require_permission(Entity.users, Operation.read))],
)
async def assignment_stats(
    engine: AssignmentEngine = Depends(assignment_engine_dep),
) -> AssignmentStatsResponse:
    stats = await engine.assignment_stats()
    return AssignmentStatsResponse(
        total_assistants=stats.total_assistants,
        assistant_ids=stats.assistant_ids,
        last_assigned_id=stats.last_assigned_id,
        last_assigned_username=stats.last_assigned_username,
        last_assigned_in_pool=stats.last_assigned_in_pool,
    )


# --- Module Notes -----------------------------------------------------------
# The order-creation flow (outside this service) stores the returned id in the
# order's `received_by` column.
