"""Access guard.

Every protected operation asks the guard whether the caller's session
holds a permission code. The guard fails closed:

- no session, no user id, or an unknown or deactivated user gives
  ``SessionInvalidError`` (401)
- a resolved set without the code granted gives ``PermissionDeniedError`` (403)

The decision is always made from a fresh resolution against the caller's
database session (which may be the one already carrying the request's
transaction). The permission list cached in the session token is only
consulted by ``session_has_permission`` for UI hints.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.auth.schemas import SessionData
from taller.core.errors import AppException
from taller.core.permissions.exceptions import (
    PermissionDeniedError,
    SessionInvalidError,
)
from taller.core.permissions.resolver import PermissionResolver
from taller.core.permissions.schemas import ResolvedPermissions
from taller.modules.users.models import User


logger = structlog.get_logger()


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a permission check.

    Exactly one of ``permissions`` (when allowed) or ``error`` (when
    denied) is meaningful; ``permissions`` is also set on a plain denial
    so callers can show what the user does have.
    """

    allowed: bool
    codes: tuple[str, ...]
    permissions: ResolvedPermissions | None = None
    error: AppException | None = None

    def raise_for_denial(self) -> ResolvedPermissions:
        """Return the resolved set, or raise the denial error."""
        if not self.allowed or self.permissions is None:
            raise self.error or PermissionDeniedError(self.codes)
        return self.permissions


async def authenticate(session: SessionData | None, *, db: AsyncSession) -> User:
    """Load the active user behind a session.

    Raises:
        SessionInvalidError: If the session is missing or names no active user
    """
    if session is None or session.user_id is None:
        raise SessionInvalidError()

    result = await db.execute(select(User).where(User.id == session.user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        logger.info(
            "session_rejected",
            user_id=str(session.user_id),
            reason="unknown_user" if user is None else "inactive_user",
        )
        raise SessionInvalidError()

    return user


async def check_any_permission(
    session: SessionData | None,
    codes: Sequence[str],
    *,
    db: AsyncSession,
    message: str | None = None,
) -> GuardDecision:
    """Check whether the session holds at least one of ``codes``.

    Never raises for an authorization outcome; the error is returned in the
    decision. Database failures still propagate.
    """
    required = tuple(codes)
    try:
        user = await authenticate(session, db=db)
    except SessionInvalidError as exc:
        return GuardDecision(allowed=False, codes=required, error=exc)

    resolved = await PermissionResolver(db).resolve_user(user)
    if any(resolved.is_granted(code) for code in codes):
        return GuardDecision(allowed=True, codes=required, permissions=resolved)

    logger.warning(
        "permission_denied", user_id=str(user.id), permission_codes=list(required)
    )
    return GuardDecision(
        allowed=False,
        codes=required,
        permissions=resolved,
        error=PermissionDeniedError(required, message=message, user_id=user.id),
    )


async def check_permission(
    session: SessionData | None,
    code: str,
    *,
    db: AsyncSession,
    message: str | None = None,
) -> GuardDecision:
    """Check whether the session holds ``code``.

    Args:
        session: The caller's session, or None
        code: Permission code, e.g. ``inventario.ver``
        db: Data-access session to resolve through
        message: Optional message for the denial error

    Returns:
        The allow/deny decision
    """
    return await check_any_permission(session, [code], db=db, message=message)


async def ensure_permission(
    session: SessionData | None,
    code: str,
    *,
    db: AsyncSession,
    message: str | None = None,
) -> ResolvedPermissions:
    """Require ``code`` for the session.

    Returns:
        The resolved permissions of the caller

    Raises:
        SessionInvalidError: If there is no usable session
        PermissionDeniedError: If the code is not granted
    """
    decision = await check_permission(session, code, db=db, message=message)
    return decision.raise_for_denial()


async def ensure_any_permission(
    session: SessionData | None,
    codes: Sequence[str],
    *,
    db: AsyncSession,
    message: str | None = None,
) -> ResolvedPermissions:
    """Require at least one of ``codes`` for the session.

    Raises:
        SessionInvalidError: If there is no usable session
        PermissionDeniedError: If none of the codes is granted
    """
    decision = await check_any_permission(session, codes, db=db, message=message)
    return decision.raise_for_denial()


def session_has_permission(session: SessionData | None, code: str) -> bool:
    """UI-only check against the permission list cached in the session.

    The cached list can be stale; never use this to authorize a write.
    """
    return session is not None and code in session.permissions


def actor_id(session: SessionData | None) -> UUID | None:
    """User id of the session, for audit and provenance fields."""
    return session.user_id if session else None
