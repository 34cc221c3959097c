"""FastAPI dependencies for the caller's session.

A missing or broken token is not rejected here: it yields a ``None``
session and the permission guards decide (401 via ``SessionInvalidError``).
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taller.core.auth.backend import session_from_token
from taller.core.auth.schemas import SessionData


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> SessionData | None:
    """Extract the session from the Authorization header.

    Args:
        credentials: Bearer token credentials from the request

    Returns:
        The decoded session, or None if absent or invalid
    """
    if not credentials:
        return None
    return session_from_token(credentials.credentials)


CurrentSession = Annotated[SessionData | None, Depends(get_session)]
