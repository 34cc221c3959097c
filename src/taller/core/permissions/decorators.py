"""Permission decorators for route protection.

The decorated handler must take ``session`` (the caller's ``SessionData``)
and ``db`` (the request's ``AsyncSession``) as keyword arguments; the
guard resolves through that same ``db``.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, cast

from taller.core.permissions.guards import ensure_any_permission


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from taller.core.auth.schemas import SessionData


P = ParamSpec("P")
R = TypeVar("R")


def _get_session_and_db(
    kwargs: dict[str, Any],
) -> tuple["SessionData | None", "AsyncSession"]:
    """Extract the session and db handle from handler kwargs.

    Raises:
        RuntimeError: If the handler was declared without a ``db`` parameter
    """
    db = kwargs.get("db")
    if db is None:
        raise RuntimeError("Permission-guarded handlers must accept a 'db' argument")
    return cast("SessionData | None", kwargs.get("session")), cast("AsyncSession", db)


def require_any_permission(
    codes: list[str],
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires any one of the given permission codes.

    Usage:
        @router.put("/roles/{role_id}/permissions")
        @require_any_permission(["roles.administrar", "permisos.asignar"])
        async def replace(role_id: UUID, session: CurrentSession, db: DBSession):
            ...

    Args:
        codes: Permission codes, at least one of which must be granted

    Returns:
        Decorator function
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            session, db = _get_session_and_db(kwargs)
            await ensure_any_permission(session, codes, db=db)
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(
    code: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires a single permission code.

    Usage:
        @router.get("/permissions/catalog")
        @require_permission("permisos.asignar")
        async def list_catalog(session: CurrentSession, db: DBSession):
            ...

    Raises:
        SessionInvalidError: If the request has no usable session
        PermissionDeniedError: If the code is not granted
    """
    return require_any_permission([code])
