"""Session tokens, session dependencies and request context middleware."""

from taller.core.auth.backend import (
    create_access_token,
    decode_token,
    session_from_token,
)
from taller.core.auth.dependencies import CurrentSession, get_session
from taller.core.auth.middleware import RequestIdMiddleware, SessionContextMiddleware
from taller.core.auth.schemas import AccessToken, SessionData, TokenData


__all__ = [
    "AccessToken",
    # Dependencies
    "CurrentSession",
    # Middleware
    "RequestIdMiddleware",
    "SessionContextMiddleware",
    # Schemas
    "SessionData",
    "TokenData",
    # Token utilities
    "create_access_token",
    "decode_token",
    "get_session",
    "session_from_token",
]
