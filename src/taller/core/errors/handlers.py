"""RFC 7807 Problem Details exception handlers.

Every error response has the same shape::

    {"type": ".../errors/permission_denied", "title": "Permission Denied",
     "status": 403, "detail": "Insufficient permissions",
     "instance": "/api/v1/roles", "request_id": "..."}

plus any ``details`` the exception carries (``codes``, ``resource`` ...).
``log_context`` is logged and never rendered, which is how a denied
permission code stays out of the response body.

See: https://tools.ietf.org/html/rfc7807
"""

from typing import TYPE_CHECKING, Any, cast

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from taller.config import settings
from taller.core.errors.exceptions import AppException


if TYPE_CHECKING:
    from starlette.types import ExceptionHandler


logger = structlog.get_logger()


class FieldError(BaseModel):
    field: str
    message: str
    type: str | None = None


class ProblemDetail(BaseModel):
    """Problem Details body.

    Attributes:
        type: Documentation URI of the error code
        title: Error code in title case
        status: HTTP status code
        detail: Message for this occurrence
        instance: Request path
        errors: Per-field problems, for request validation only
        request_id: Id from ``RequestIdMiddleware``, to match the logs
    """

    type: str
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[FieldError] | None = None
    request_id: str | None = None

    model_config = {"extra": "allow"}


def _problem(
    request: Request,
    status_code: int,
    error_code: str,
    detail: str,
    title: str | None = None,
    extra: dict[str, Any] | None = None,
    errors: list[FieldError] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = ProblemDetail(
        type=f"{settings.api_docs_base_url}/errors/{error_code}",
        title=title or error_code.replace("_", " ").title(),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        errors=errors,
        request_id=getattr(request.state, "request_id", None),
    ).model_dump(exclude_none=True)

    # Exception details never overwrite the standard fields
    for key, value in (extra or {}).items():
        content.setdefault(key, value)

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an ``AppException`` subclass."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app_exception",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        path=str(request.url.path),
        details=exc.details,
        **exc.log_context,
    )
    return _problem(
        request, exc.status_code, exc.error_code, exc.message, extra=exc.details
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Turn a unique-constraint race into 409.

    Services check names and links before writing, so this only fires when
    two requests create the same role, code or link at the same time.
    """
    logger.warning(
        "integrity_conflict",
        path=str(request.url.path),
        error=str(exc.orig),
    )
    return _problem(
        request,
        status.HTTP_409_CONFLICT,
        "conflict",
        "The change conflicts with a concurrent update; retry the request",
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures with one entry per field."""
    errors = [
        FieldError(
            # The "body" prefix carries no information for clients
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body")
            or "unknown",
            message=error.get("msg", "Invalid value"),
            type=error.get("type"),
        )
        for error in exc.errors()
    ]

    logger.warning(
        "validation_error",
        path=str(request.url.path),
        error_count=len(errors),
    )
    return _problem(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        title="Validation Error",
        errors=errors,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected and answer with a bare 500."""
    logger.exception(
        "unhandled_exception",
        path=str(request.url.path),
        error_type=type(exc).__name__,
    )
    return _problem(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
        title="Internal Server Error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on ``app``; called from ``create_app``."""
    app.add_exception_handler(
        AppException, cast("ExceptionHandler", app_exception_handler)
    )
    app.add_exception_handler(
        IntegrityError, cast("ExceptionHandler", integrity_error_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", validation_exception_handler)
    )
    app.add_exception_handler(Exception, generic_exception_handler)
