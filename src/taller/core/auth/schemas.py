"""Session and token schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        user_id: The user's UUID
        exp: Token expiration time
        type: Token type (always "access" for now)
        jti: Unique token id
        permissions: Permission codes cached at issue time
    """

    user_id: UUID
    exp: datetime
    type: str = "access"
    jti: str | None = None
    permissions: list[str] = Field(default_factory=list)


class SessionData(BaseModel):
    """The caller's session as seen by the guards.

    ``permissions`` is the list cached in the token when it was issued. It
    may be stale and is only good for UI hints; enforcement always resolves
    afresh from the database.
    """

    user_id: UUID | None = None
    permissions: list[str] = Field(default_factory=list)


class AccessToken(BaseModel):
    """A freshly issued access token.

    Attributes:
        access_token: JWT for API access
        token_type: Always "bearer"
        expires_in: Lifetime in seconds
        permissions: Granted codes embedded in the token
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    permissions: list[str]
