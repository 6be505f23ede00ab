"""
crm_access.api.routers.me

Caller introspection.

Responsibilities:
- Return the authenticated identity and the flat permission list its role holds.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from crm_access.auth.deps import get_identity
from crm_access.auth.models import Identity
from crm_access.auth.permissions import can_access_financial_data, permissions_for

router = APIRouter(prefix="/v1/me", tags=["me"])


class MeResponse(BaseModel):
    id: str
    role: str
    permissions: list[str]
    can_access_financial_data: bool


@router.get("", response_model=MeResponse)
async def get_me(identity: Identity = Depends(get_identity)) -> MeResponse:
    return MeResponse(
        id=identity.id,
        role=identity.role.value,
        permissions=permissions_for(identity.role),
        can_access_financial_data=can_access_financial_data(identity.role),
    )
