"""
crm_access.api.routers.dev_auth

Development-only token minting.

Responsibilities:
- Issue a signed bearer token for an existing user id in dev/test.
- Hide the endpoint entirely (404) when running in prod.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from crm_access.api.deps import db_session, settings_dep
from crm_access.auth.jwt import JwtConfig, issue_token
from crm_access.db.repositories.users import UserRepo
from crm_access.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    ttl_minutes: int | None = Field(default=None, ge=1, le=30 * 24 * 60)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/token", response_model=DevTokenResponse)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> DevTokenResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    # Unknown ids still get a token; the authenticator rejects them as UnknownUser.
    user = await UserRepo(session).get(body.user_id)
    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        subject=body.user_id,
        role=user.role if user is not None else None,
        ttl=timedelta(minutes=body.ttl_minutes or settings.jwt_ttl_minutes),
    )
    return DevTokenResponse(access_token=token)


# --- Module Notes -----------------------------------------------------------
# The token's `role` claim is informational; the authenticator re-reads the role
# from the directory on every request.
