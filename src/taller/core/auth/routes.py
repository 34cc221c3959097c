"""Session API routes.

Provides endpoints for:
- Re-issuing the access token after role or override changes
"""

from datetime import timedelta

import structlog
from fastapi import APIRouter

from taller.api.dependencies import DBSession
from taller.config import settings
from taller.core.auth.backend import create_access_token
from taller.core.auth.dependencies import CurrentSession
from taller.core.auth.schemas import AccessToken
from taller.core.permissions.guards import authenticate
from taller.core.permissions.resolver import PermissionResolver


logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/refresh-session",
    response_model=AccessToken,
    summary="Refresh session permissions",
    description=(
        "Issues a new access token whose cached permission list reflects the "
        "caller's current role and overrides."
    ),
)
async def refresh_session(session: CurrentSession, db: DBSession) -> AccessToken:
    user = await authenticate(session, db=db)
    resolved = await PermissionResolver(db).resolve_user(user)
    codes = resolved.granted_codes()

    expires = timedelta(minutes=settings.access_token_expire_minutes)
    token = create_access_token(user.id, codes, expires_delta=expires)
    logger.info("session_refreshed", user_id=str(user.id), permissions=len(codes))

    return AccessToken(
        access_token=token,
        expires_in=int(expires.total_seconds()),
        permissions=codes,
    )
