"""Role API routes."""

from uuid import UUID

from fastapi import Query, Response, status

from taller.api.dependencies import DBSession
from taller.core.auth import CurrentSession
from taller.core.permissions import (
    actor_id,
    authenticate,
    ensure_permission,
    require_any_permission,
    require_permission,
)
from taller.core.permissions.defaults import PERMISSIONS_ASSIGN, ROLES_ADMIN
from taller.modules.roles import router
from taller.modules.roles.schemas import (
    PermissionsAssign,
    RoleCreate,
    RoleDetail,
    RoleDisableResponse,
    RolePermissionResponse,
    RoleResponse,
    RoleUpdate,
)
from taller.modules.roles.services import RoleSvc, link_response


ROLE_PERMISSION_WRITERS = [ROLES_ADMIN, PERMISSIONS_ASSIGN]


# ============================================================
# Roles
# ============================================================


@router.get(
    "",
    response_model=list[RoleResponse],
    summary="List roles",
    description=(
        "Any signed-in user can list active roles; "
        "inactive roles and stats need roles.administrar."
    ),
)
async def list_roles(
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,
    search: str | None = Query(default=None, max_length=80),
    include_inactive: bool = Query(default=False),
    include_stats: bool = Query(default=False),
) -> list[RoleResponse]:
    if include_inactive or include_stats:
        await ensure_permission(session, ROLES_ADMIN, db=db)
    else:
        await authenticate(session, db=db)
    return await service.list_roles(
        search=search,
        include_inactive=include_inactive,
        include_stats=include_stats,
    )


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
@require_permission(ROLES_ADMIN)
async def create_role(
    data: RoleCreate,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> RoleResponse:
    role = await service.create_role(data, actor_id(session))
    return RoleResponse.model_validate(role)


@router.get(
    "/{role_id}",
    response_model=RoleDetail,
    summary="Get a role with its permissions",
)
@require_permission(ROLES_ADMIN)
async def get_role(
    role_id: UUID,
    service: RoleSvc,
    session: CurrentSession,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleDetail:
    return await service.get_role_detail(role_id)


@router.patch(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Update a role",
)
@require_permission(ROLES_ADMIN)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> RoleResponse:
    role = await service.update_role(role_id, data, actor_id(session))
    return RoleResponse.model_validate(role)


@router.delete(
    "/{role_id}",
    response_model=RoleDisableResponse,
    summary="Disable a role",
    description=(
        "Soft-disables the role. Its permission links are kept so re-enabling "
        "restores them. A warning is returned when active users still hold it."
    ),
)
@require_permission(ROLES_ADMIN)
async def disable_role(
    role_id: UUID,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> RoleDisableResponse:
    result = await service.disable_role(role_id, actor_id(session))
    return RoleDisableResponse(
        role=RoleResponse.model_validate(result.role),
        active_users=result.active_users,
        warning=str(result.warning) if result.warning else None,
    )


# ============================================================
# Role permissions
# ============================================================


@router.get(
    "/{role_id}/permissions",
    response_model=list[RolePermissionResponse],
    summary="List a role's permissions",
)
@require_permission(ROLES_ADMIN)
async def list_role_permissions(
    role_id: UUID,
    service: RoleSvc,
    session: CurrentSession,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> list[RolePermissionResponse]:
    return [link_response(link) for link in await service.list_permissions(role_id)]


@router.post(
    "/{role_id}/permissions",
    response_model=list[RolePermissionResponse],
    summary="Assign permissions to a role",
    description="All codes must be active catalog entries or nothing is assigned.",
)
@require_any_permission(ROLE_PERMISSION_WRITERS)
async def assign_role_permissions(
    role_id: UUID,
    data: PermissionsAssign,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> list[RolePermissionResponse]:
    links = await service.assign(role_id, data.codes, actor_id(session), note=data.note)
    return [link_response(link) for link in links]


@router.put(
    "/{role_id}/permissions",
    response_model=list[RolePermissionResponse],
    summary="Replace a role's permissions",
)
@require_any_permission(ROLE_PERMISSION_WRITERS)
async def replace_role_permissions(
    role_id: UUID,
    data: PermissionsAssign,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> list[RolePermissionResponse]:
    links = await service.replace(role_id, data.codes, actor_id(session), note=data.note)
    return [link_response(link) for link in links]


@router.delete(
    "/{role_id}/permissions/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a permission from a role",
    description="Succeeds whether or not the role had the permission.",
)
@require_any_permission(ROLE_PERMISSION_WRITERS)
async def unassign_role_permission(
    role_id: UUID,
    code: str,
    service: RoleSvc,
    session: CurrentSession,
    db: DBSession,  # noqa: ARG001
) -> Response:
    await service.unassign(role_id, code, actor_id(session))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
