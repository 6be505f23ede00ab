"""
tests.test_authenticator

Authentication check ordering and failure typing.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from crm_access.auth.authenticator import Authenticator
from crm_access.auth.guard import AuthorizationGuard
from crm_access.auth.jwt import JwtConfig, issue_token
from crm_access.auth.models import Entity, Identity, Operation, Role
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
from tests.conftest import BrokenAuditSink, FakeDirectory, RecordingAuditSink


def _authenticator(cfg: JwtConfig, directory: FakeDirectory, audit, **kw) -> Authenticator:
    return Authenticator(jwt_cfg=cfg, directory=directory, audit=audit, **kw)


@pytest.mark.asyncio
async def test_valid_token_resolves_identity(jwt_cfg, directory, audit) -> None:
    directory.add("u1", role="assistant")
    token = issue_token(cfg=jwt_cfg, subject="u1", role="assistant")

    identity = await _authenticator(jwt_cfg, directory, audit).authenticate(token)

    assert identity == Identity(id="u1", role=Role.assistant, active=True)
    assert audit.events == []


@pytest.mark.asyncio
@pytest.mark.parametrize("credential", [None, "", "   "])
async def test_missing_credential(jwt_cfg, directory, audit, credential) -> None:
    with pytest.raises(MissingCredential):
        await _authenticator(jwt_cfg, directory, audit).authenticate(credential)
    assert directory.lookups == 0


@pytest.mark.asyncio
async def test_bad_signature_is_invalid(jwt_cfg, directory, audit) -> None:
    directory.add("u1")
    other = JwtConfig(alg="HS256", issuer=jwt_cfg.issuer, audience=jwt_cfg.audience, secret="x")
    token = issue_token(cfg=other, subject="u1")

    with pytest.raises(InvalidCredential):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)
    assert directory.lookups == 0


@pytest.mark.asyncio
async def test_garbage_token_is_invalid(jwt_cfg, directory, audit) -> None:
    with pytest.raises(InvalidCredential):
        await _authenticator(jwt_cfg, directory, audit).authenticate("not-a-jwt")


@pytest.mark.asyncio
async def test_token_without_subject_is_invalid(jwt_cfg, directory, audit) -> None:
    now = datetime.now(tz=UTC)
    token = jwt.encode(
        {
            "iss": jwt_cfg.issuer,
            "aud": jwt_cfg.audience,
            "sub": "",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=5)).timestamp()),
        },
        jwt_cfg.secret,
        algorithm=jwt_cfg.alg,
    )
    with pytest.raises(InvalidCredential):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)
    assert directory.lookups == 0


@pytest.mark.asyncio
async def test_expired_token_for_inactive_user_reports_expiry(jwt_cfg, directory, audit) -> None:
    # Expiry is checked before the directory, so the inactive flag is never consulted.
    directory.add("u1", active=False)
    token = issue_token(
        cfg=jwt_cfg,
        subject="u1",
        ttl=timedelta(minutes=1),
        now=datetime.now(tz=UTC) - timedelta(hours=2),
    )

    with pytest.raises(ExpiredCredential):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)
    assert directory.lookups == 0
    assert audit.kinds() == ["AUTHENTICATION_FAILED"]
    assert audit.events[0][2] == {"code": "expired_credential"}


@pytest.mark.asyncio
async def test_unknown_user(jwt_cfg, directory, audit) -> None:
    token = issue_token(cfg=jwt_cfg, subject="ghost")
    with pytest.raises(UnknownUser):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)


@pytest.mark.asyncio
async def test_inactive_account_rejected_despite_valid_token(jwt_cfg, directory, audit) -> None:
    directory.add("u1", role="not-a-role", active=False)
    token = issue_token(cfg=jwt_cfg, subject="u1", role="assistant")
    # Inactive is checked before role, so the bad role is not what gets reported.
    with pytest.raises(InactiveAccount):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)


@pytest.mark.asyncio
async def test_unrecognized_role(jwt_cfg, directory, audit) -> None:
    directory.add("u1", role="customer")
    token = issue_token(cfg=jwt_cfg, subject="u1", role="admin")
    with pytest.raises(InvalidRole):
        await _authenticator(jwt_cfg, directory, audit).authenticate(token)


@pytest.mark.asyncio
async def test_role_comes_from_directory_not_token(jwt_cfg, directory, audit) -> None:
    directory.add("u1", role="assistant")
    token = issue_token(cfg=jwt_cfg, subject="u1", role="admin")
    identity = await _authenticator(jwt_cfg, directory, audit).authenticate(token)
    assert identity.role is Role.assistant


@pytest.mark.asyncio
async def test_directory_timeout_is_transient(jwt_cfg, audit) -> None:
    slow = FakeDirectory(delay=0.5)
    slow.add("u1")
    token = issue_token(cfg=jwt_cfg, subject="u1")
    auth = _authenticator(jwt_cfg, slow, audit, lookup_timeout=0.01)

    with pytest.raises(TransientFailure) as exc_info:
        await auth.authenticate(token)
    assert not isinstance(exc_info.value, AuthenticationError)


@pytest.mark.asyncio
async def test_directory_error_is_transient(jwt_cfg, audit) -> None:
    broken = FakeDirectory(fail_with=ConnectionError("directory down"))
    broken.add("u1")
    token = issue_token(cfg=jwt_cfg, subject="u1")

    with pytest.raises(TransientFailure) as exc_info:
        await _authenticator(jwt_cfg, broken, audit).authenticate(token)
    assert not isinstance(exc_info.value, AuthenticationError)
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert audit.events == []


@pytest.mark.asyncio
async def test_broken_audit_does_not_mask_failure(jwt_cfg, directory) -> None:
    with pytest.raises(MissingCredential):
        await _authenticator(jwt_cfg, directory, BrokenAuditSink()).authenticate(None)


class _CountingGuard(AuthorizationGuard):
    calls = 0

    def authorize(self, identity, entity, operation) -> bool:
        type(self).calls += 1
        return super().authorize(identity, entity, operation)


@pytest.mark.asyncio
async def test_expired_credential_never_reaches_authorize(jwt_cfg, directory) -> None:
    audit = RecordingAuditSink()
    directory.add("u1", role="assistant")
    auth = _authenticator(jwt_cfg, directory, audit)
    guard = _CountingGuard(audit=audit)
    token = issue_token(
        cfg=jwt_cfg, subject="u1", now=datetime.now(tz=UTC) - timedelta(days=1)
    )

    async def handle(credential: str) -> bool:
        identity = await auth.authenticate(credential)
        return guard.authorize(identity, Entity.orders, Operation.create)

    with pytest.raises(ExpiredCredential):
        await handle(token)
    assert _CountingGuard.calls == 0
