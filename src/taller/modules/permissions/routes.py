"""Permission catalog and user-override API routes."""

from uuid import UUID

from fastapi import Query, Response, status

from taller.api.dependencies import DBSession
from taller.core.auth import CurrentSession
from taller.core.permissions import (
    PermissionResolver,
    ResolvedPermissions,
    UserPermission,
    actor_id,
    authenticate,
    require_any_permission,
    require_permission,
)
from taller.core.permissions.defaults import (
    PERMISSIONS_ADMIN,
    PERMISSIONS_ASSIGN,
    ROLES_ADMIN,
)
from taller.modules.permissions import router
from taller.modules.permissions.schemas import (
    ModuleGroup,
    OverrideResponse,
    OverrideSet,
    OverridesSet,
    PermissionCreate,
    PermissionResponse,
    PermissionUpdate,
    ResyncRequest,
    ResyncResult,
)
from taller.modules.permissions.services import CatalogSvc, OverrideSvc


OVERRIDE_WRITERS = [PERMISSIONS_ASSIGN, ROLES_ADMIN]


def _override_response(row: UserPermission) -> OverrideResponse:
    return OverrideResponse(
        code=row.permission.code,
        granted=row.granted,
        origin=row.origin,
        comment=row.comment,
    )


# ============================================================
# Catalog
# ============================================================


@router.get(
    "/catalog",
    response_model=list[PermissionResponse],
    summary="List the permission catalog",
)
@require_permission(PERMISSIONS_ASSIGN)
async def list_catalog(
    service: CatalogSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
    include_inactive: bool = Query(default=False),
) -> list[PermissionResponse]:
    """List catalog entries ordered by module and code."""
    permissions = await service.list_catalog(include_inactive=include_inactive)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.post(
    "/catalog",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a catalog entry",
)
@require_permission(PERMISSIONS_ADMIN)
async def create_permission(
    data: PermissionCreate,
    service: CatalogSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> PermissionResponse:
    permission = await service.create_permission(data, actor_id(session))
    return PermissionResponse.model_validate(permission)


@router.patch(
    "/catalog/{code}",
    response_model=PermissionResponse,
    summary="Edit or deactivate a catalog entry",
    description="The code itself is immutable; send active=false to retire an entry.",
)
@require_permission(PERMISSIONS_ADMIN)
async def update_permission(
    code: str,
    data: PermissionUpdate,
    service: CatalogSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> PermissionResponse:
    permission = await service.update_permission(code, data, actor_id(session))
    return PermissionResponse.model_validate(permission)


@router.get(
    "/modules",
    response_model=list[ModuleGroup],
    summary="Catalog grouped by module",
)
@require_permission(ROLES_ADMIN)
async def list_modules(
    service: CatalogSvc,
    session: CurrentSession,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> list[ModuleGroup]:
    return await service.list_by_module()


# ============================================================
# Effective permissions
# ============================================================


@router.get(
    "/me",
    response_model=ResolvedPermissions,
    summary="My effective permissions",
)
async def my_permissions(session: CurrentSession, db: DBSession) -> ResolvedPermissions:
    """Resolve the caller's own permissions."""
    user = await authenticate(session, db=db)
    return await PermissionResolver(db).resolve_user(user)


@router.get(
    "/users/{user_id}",
    response_model=ResolvedPermissions,
    summary="A user's role permissions, overrides and effective set",
)
@require_permission(PERMISSIONS_ASSIGN)
async def get_user_permissions(
    user_id: UUID,
    session: CurrentSession,  # noqa: ARG001
    db: DBSession,
) -> ResolvedPermissions:
    return await PermissionResolver(db).resolve(user_id)


# ============================================================
# Overrides
# ============================================================


@router.put(
    "/users/{user_id}",
    response_model=list[OverrideResponse],
    summary="Set several overrides at once",
)
@require_any_permission(OVERRIDE_WRITERS)
async def set_user_overrides(
    user_id: UUID,
    data: OverridesSet,
    service: OverrideSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> list[OverrideResponse]:
    rows = await service.set_overrides(
        user_id, data.items, actor_id(session), description=data.description
    )
    return [_override_response(row) for row in rows]


@router.put(
    "/users/{user_id}/{code}",
    response_model=OverrideResponse,
    summary="Grant or revoke one permission for a user",
)
@require_any_permission(OVERRIDE_WRITERS)
async def set_user_override(
    user_id: UUID,
    code: str,
    data: OverrideSet,
    service: OverrideSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> OverrideResponse:
    row = await service.set_override(
        user_id,
        code,
        granted=data.granted,
        actor_id=actor_id(session),
        origin=data.origin,
        comment=data.comment,
    )
    return _override_response(row)


@router.delete(
    "/users/{user_id}/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear a user's override",
    description="Succeeds whether or not an override existed.",
)
@require_any_permission(OVERRIDE_WRITERS)
async def clear_user_override(
    user_id: UUID,
    code: str,
    service: OverrideSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> Response:
    await service.clear_override(user_id, code, actor_id(session))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/resync",
    response_model=ResyncResult,
    summary="Reset a user's overrides to role defaults",
)
@require_any_permission(OVERRIDE_WRITERS)
async def resync_user_permissions(
    user_id: UUID,
    data: ResyncRequest,
    service: OverrideSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> ResyncResult:
    return await service.resync(user_id, data.keep_manual, actor_id(session))
