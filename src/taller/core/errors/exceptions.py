"""Base error hierarchy.

Each class fixes an HTTP status; the RFC 7807 handlers render any subclass
without per-route translation. Domain modules subclass these (see
``taller.core.permissions.exceptions``) rather than raising them directly.
"""

from typing import Any


class AppException(Exception):
    """Root of every error the API turns into a Problem Details response.

    Attributes:
        message: Shown to the client as ``detail``
        error_code: Stable machine-readable code, also used in the type URI
        status_code: HTTP status of the response
        details: Extra fields merged into the response body
        log_context: Fields written to the log only, never to the client
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        self.log_context = log_context or {}
        super().__init__(self.message)


class BadRequestError(AppException):
    """The request is well-formed but refers to something unusable.

    Example:
        raise BadRequestError("Unknown permission code", details={"codes": codes})
    """

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class UnauthorizedError(AppException):
    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class NotFoundError(AppException):
    """A referenced role, user or other record does not exist.

    ``resource`` and ``resource_id`` end up in the response body so clients
    can tell a missing user from a missing role.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id=str(role_id))
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """A write collides with a unique name or code.

    Example:
        raise ConflictError("Role name already in use", details={"name": name})
    """

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409
