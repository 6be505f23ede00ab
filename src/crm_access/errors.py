"""
crm_access.errors

Typed failure taxonomy for the access-control and assignment core.

Responsibilities:
- Give every authentication, authorization, and assignment failure its own type.
- Carry a stable machine-readable `code` and the HTTP status the API edge maps it to.

Callers branch on the exception type; the API layer turns any `AccessError` into a
JSON response via the handlers registered in `api.app`.
"""

from __future__ import annotations

from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AccessError(Exception):
    code: str = "access_error"
    http_status: int = HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Access error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# --- Authentication ----------------------------------------------------------


class AuthenticationError(AccessError):
    code = "authentication_failed"
    http_status = HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class MissingCredential(AuthenticationError):
    code = "missing_credential"
    default_detail = "Access token required"


class InvalidCredential(AuthenticationError):
    code = "invalid_credential"
    default_detail = "Invalid token"


class ExpiredCredential(AuthenticationError):
    code = "expired_credential"
    default_detail = "Token expired"


class UnknownUser(AuthenticationError):
    code = "unknown_user"
    default_detail = "User not found"


class InactiveAccount(AuthenticationError):
    code = "inactive_account"
    default_detail = "Account has been deactivated"


class InvalidRole(AuthenticationError):
    code = "invalid_role"
    default_detail = "Invalid user role"


# --- Authorization -----------------------------------------------------------


class Unauthenticated(AccessError):
    code = "unauthenticated"
    http_status = HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class Forbidden(AccessError):
    code = "forbidden"
    http_status = HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


# --- Infrastructure / assignment ---------------------------------------------


class TransientFailure(AccessError):
    # A collaborator (directory, store) did not answer in time; safe to retry.
    code = "transient_failure"
    http_status = HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable"


class AssignmentError(AccessError):
    code = "assignment_error"
    default_detail = "Order assignment failed"


class NoAvailableAssistants(AssignmentError):
    code = "no_available_assistants"
    http_status = HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "No available assistants found"


class AssignmentPersistenceFailed(AssignmentError, TransientFailure):
    code = "assignment_persistence_failed"
    http_status = HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to record assignment"


# --- Module Notes -----------------------------------------------------------
# `AssignmentPersistenceFailed` is both an assignment error and a transient one:
# callers that retry infrastructure faults catch `TransientFailure`, while callers
# that only care about order assignment catch `AssignmentError`.
