"""Permission domain errors.

Guard and resolver failures are plain ``AppException`` subclasses, so the
RFC 7807 handlers turn them into 401/403/400/404 responses without any
per-route translation.
"""

from collections.abc import Iterable
from uuid import UUID

from taller.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)


class SessionInvalidError(UnauthorizedError):
    """No session, or the session does not name an existing active user."""

    message = "Authentication required"
    error_code = "session_invalid"


class PermissionDeniedError(ForbiddenError):
    """The caller is authenticated but the permission is not granted.

    The required codes are kept on the exception and in the log only; the
    response body just says "Insufficient permissions".

    Attributes:
        codes: Every code that would have been accepted
        code: The required code, or None when any of several would do
    """

    message = "Insufficient permissions"
    error_code = "permission_denied"

    def __init__(
        self,
        codes: str | Iterable[str],
        message: str | None = None,
        user_id: UUID | None = None,
    ) -> None:
        self.codes = [codes] if isinstance(codes, str) else list(codes)
        self.code = self.codes[0] if len(self.codes) == 1 else None
        self.user_id = user_id
        super().__init__(
            message=message,
            log_context={
                "permission_codes": self.codes,
                "user_id": str(user_id) if user_id else None,
            },
        )


class PermissionNotFoundError(BadRequestError):
    """A write referenced a code that is not in the catalog."""

    message = "Unknown permission code"
    error_code = "permission_not_found"

    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        super().__init__(message=message, details={"codes": [code]})


class BatchValidationError(BadRequestError):
    """One or more codes in a batch are unknown or inactive.

    Nothing from the batch is written when this is raised.
    """

    message = "Some permission codes are unknown or inactive"
    error_code = "invalid_permission_codes"

    def __init__(self, codes: Iterable[str], message: str | None = None) -> None:
        self.codes = sorted(set(codes))
        super().__init__(message=message, details={"codes": self.codes})


class UserNotFoundError(NotFoundError):
    message = "User not found"
    error_code = "user_not_found"

    def __init__(self, user_id: UUID | str) -> None:
        self.user_id = user_id
        super().__init__(resource="user", resource_id=str(user_id))


class RoleNotFoundError(NotFoundError):
    message = "Role not found"
    error_code = "role_not_found"

    def __init__(self, role_id: UUID | str) -> None:
        self.role_id = role_id
        super().__init__(resource="role", resource_id=str(role_id))


class RoleHasActiveUsersWarning(UserWarning):
    """A disabled role is still held by active users.

    Returned alongside the disable result for the caller to surface; never
    raised, since disabling is always permitted.
    """

    def __init__(self, role_id: UUID, active_users: int) -> None:
        self.role_id = role_id
        self.active_users = active_users
        super().__init__(
            f"Role {role_id} is still assigned to {active_users} active user(s)"
        )
