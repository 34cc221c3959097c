"""JWT session tokens.

Identity issuance lives elsewhere in the workshop app; this service only
mints and reads the access token that carries the user id and the cached
permission list (``perms`` claim).
"""

import secrets
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from taller.config import settings
from taller.core.auth.schemas import SessionData, TokenData
from taller.core.constants import ACCESS_TOKEN_JTI_LENGTH


def create_access_token(
    user_id: UUID,
    permissions: Iterable[str] = (),
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        user_id: The user's UUID
        permissions: Granted codes to cache in the ``perms`` claim
        expires_delta: Optional custom expiration time
        additional_claims: Optional extra claims to include

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "perms": sorted(set(permissions)),
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(ACCESS_TOKEN_JTI_LENGTH),
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> TokenData | None:
    """Decode and validate a JWT token.

    Args:
        token: The JWT token to decode

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        user_id = payload.get("sub")
        exp = payload.get("exp")
        if not user_id or exp is None:
            return None

        perms = payload.get("perms") or []
        if not isinstance(perms, list):
            return None

        return TokenData(
            user_id=UUID(user_id),
            exp=datetime.fromtimestamp(exp, tz=UTC),
            type=payload.get("type", "access"),
            jti=payload.get("jti"),
            permissions=[str(code) for code in perms],
        )

    except (JWTError, ValueError):
        return None


def session_from_token(token: str | None) -> SessionData | None:
    """Turn a bearer token into a session, or None when it is unusable."""
    if not token:
        return None
    token_data = decode_token(token)
    if token_data is None or token_data.type != "access":
        return None
    return SessionData(user_id=token_data.user_id, permissions=token_data.permissions)
