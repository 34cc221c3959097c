"""Request context middleware.

This module provides middleware for:
- Request tracing with unique IDs
- Binding the acting user to the log context
"""

import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from taller.core.auth.backend import session_from_token


class SessionContextMiddleware(BaseHTTPMiddleware):
    """Bind the token's user id to ``request.state`` and structlog.

    Purely informational; it never rejects a request. Authorization is
    decided by the permission guards.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session = session_from_token(auth_header.split(" ", 1)[1])
            if session and session.user_id:
                request.state.user_id = session.user_id
                structlog.contextvars.bind_contextvars(user_id=str(session.user_id))

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a unique request ID to each request.

    The request ID is added to:
    - request.state.request_id
    - Response header X-Request-ID
    - Structlog context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")

        response.headers["X-Request-ID"] = request_id
        return response
