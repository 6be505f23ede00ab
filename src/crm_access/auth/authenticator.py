"""
crm_access.auth.authenticator

Bearer credential -> `Identity` resolution.

Responsibilities:
- Run the authentication checks in a fixed order, stopping at the first failure:
  presence, token validity/expiry, user existence, active flag, recognized role.
- Report each failure as its own `AuthenticationError` subtype.
- Audit failures (best effort) without ever mutating the user record.
"""

from __future__ import annotations

import asyncio

from crm_access.audit import emit
from crm_access.auth.jwt import (
    JwtConfig,
    JwtExpiredError,
    JwtValidationError,
    decode_and_validate,
)
from crm_access.auth.models import Identity, Role
from crm_access.errors import (
    AuthenticationError,
    ExpiredCredential,
    InactiveAccount,
    InvalidCredential,
    InvalidRole,
    MissingCredential,
    TransientFailure,
    UnknownUser,
)
from crm_access.observability.logging import get_logger
from crm_access.ports import AuditSink, UserDirectory, UserRecord

log = get_logger(__name__)


class Authenticator:
    def __init__(
        self,
        *,
        jwt_cfg: JwtConfig,
        directory: UserDirectory,
        audit: AuditSink,
        lookup_timeout: float | None = None,
    ) -> None:
        self._jwt_cfg = jwt_cfg
        self._directory = directory
        self._audit = audit
        self._lookup_timeout = lookup_timeout

    async def authenticate(self, credential: str | None) -> Identity:
        try:
            return await self._authenticate(credential)
        except AuthenticationError as e:
            log.info("auth.rejected", code=e.code)
            emit(self._audit, "AUTHENTICATION_FAILED", None, {"code": e.code})
            raise

    async def _authenticate(self, credential: str | None) -> Identity:
        if credential is None or not credential.strip():
            raise MissingCredential()

        try:
            payload = decode_and_validate(cfg=self._jwt_cfg, token=credential.strip())
        except JwtExpiredError as e:
            raise ExpiredCredential() from e
        except JwtValidationError as e:
            raise InvalidCredential(f"Invalid token: {e}") from e

        subject = str(payload.get("sub") or "")
        if not subject:
            raise InvalidCredential("Invalid token subject")

        user = await self._lookup(subject)
        if user is None:
            raise UnknownUser()
        if not user.active:
            raise InactiveAccount()
        try:
            role = Role(user.role)
        except ValueError as e:
            raise InvalidRole() from e

        return Identity(id=user.id, role=role, active=True)

    async def _lookup(self, user_id: str) -> UserRecord | None:
        try:
            async with asyncio.timeout(self._lookup_timeout):
                return await self._directory.find_user_by_id(user_id)
        except TimeoutError as e:
            raise TransientFailure("User directory timed out") from e
        except Exception as e:
            log.exception("auth.directory_failed")
            raise TransientFailure("User directory unavailable") from e


# --- Module Notes -----------------------------------------------------------
# Role and active flag come from the directory on every request, so deactivating a
# user or changing their role takes effect without waiting for token expiry.
