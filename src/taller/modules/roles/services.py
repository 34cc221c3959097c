"""Role service: role lifecycle and role-permission assignment."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from taller.core.audit import AuditAction, AuditSvc
from taller.core.errors import ConflictError
from taller.core.permissions.exceptions import (
    RoleHasActiveUsersWarning,
    RoleNotFoundError,
)
from taller.core.permissions.models import Permission, Role, RolePermission
from taller.modules.permissions.services import CatalogSvc
from taller.modules.roles.repos import RolePermissionRepo, RoleRepo
from taller.modules.roles.schemas import (
    RoleCreate,
    RoleDetail,
    RolePermissionResponse,
    RoleResponse,
    RoleUpdate,
)
from taller.modules.users.repos import UserRepo


logger = structlog.get_logger()


@dataclass
class RoleDisableResult:
    """A disabled role plus the informational warning, if any."""

    role: Role
    active_users: int
    warning: RoleHasActiveUsersWarning | None = None


def link_response(link: RolePermission) -> RolePermissionResponse:
    permission = link.permission
    return RolePermissionResponse(
        code=permission.code,
        name=permission.name,
        description=permission.description,
        module=permission.module,
        group=permission.group,
        active=permission.active,
        note=link.note,
        assigned_by_id=link.assigned_by_id,
    )


class RoleService:
    """Service for role management.

    Assignments are validated as a whole before anything is written, and
    the writes share the request's transaction with their audit entry, so a
    batch lands completely or not at all.
    """

    def __init__(
        self,
        roles: RoleRepo,
        links: RolePermissionRepo,
        catalog: CatalogSvc,
        users: UserRepo,
        audit: AuditSvc,
    ) -> None:
        self.roles = roles
        self.links = links
        self.catalog = catalog
        self.users = users
        self.audit = audit

    # ============================================================
    # Roles
    # ============================================================

    async def get_role(self, role_id: UUID) -> Role:
        """Get a role by ID.

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        role = await self.roles.get_by_id(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    async def list_roles(
        self,
        search: str | None = None,
        include_inactive: bool = False,
        include_stats: bool = False,
    ) -> list[RoleResponse]:
        """List roles, optionally with user and permission counts."""
        roles = await self.roles.list_roles(search=search, include_inactive=include_inactive)
        items = [RoleResponse.model_validate(role) for role in roles]
        if not include_stats:
            return items

        role_ids = [role.id for role in roles]
        permission_counts = await self.links.count_by_roles(role_ids)
        user_counts = await self.users.count_by_roles(role_ids)
        for item in items:
            item.total_permissions = permission_counts.get(item.id, 0)
            item.total_users = user_counts.get(item.id, 0)
        return items

    async def get_role_detail(self, role_id: UUID) -> RoleDetail:
        role = await self.get_role(role_id)
        links = await self.links.list_for_role(role_id)
        user_counts = await self.users.count_by_roles([role_id])

        detail = RoleDetail.model_validate(role)
        detail.permissions = [link_response(link) for link in links]
        detail.total_permissions = len(links)
        detail.total_users = user_counts.get(role_id, 0)
        return detail

    async def _ensure_name_free(self, name: str, role_id: UUID | None = None) -> None:
        existing = await self.roles.get_by_name(name)
        if existing is not None and existing.id != role_id:
            raise ConflictError(
                "A role with this name already exists",
                error_code="role_name_exists",
                details={"name": name},
            )

    async def create_role(self, data: RoleCreate, actor_id: UUID | None) -> Role:
        """Create a role.

        Raises:
            ConflictError: If the name is already taken
        """
        await self._ensure_name_free(data.name)
        role = await self.roles.create(
            Role(name=data.name, description=data.description, active=data.active)
        )
        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_CREATED,
            description=f"Created role {role.name}",
            table="roles",
        )
        return role

    async def update_role(
        self, role_id: UUID, data: RoleUpdate, actor_id: UUID | None
    ) -> Role:
        """Edit a role's name, description or active flag.

        Re-enabling a disabled role brings its previous links back into effect.
        """
        role = await self.get_role(role_id)
        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "active"):
            if changes.get(field, ...) is None:
                del changes[field]
        if "name" in changes and changes["name"] != role.name:
            await self._ensure_name_free(changes["name"], role_id)

        for field, value in changes.items():
            setattr(role, field, value)
        role = await self.roles.update(role)

        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_UPDATED,
            description=f"Updated role {role.name}: {', '.join(sorted(changes))}",
            table="roles",
        )
        return role

    async def disable_role(self, role_id: UUID, actor_id: UUID | None) -> RoleDisableResult:
        """Soft-disable a role.

        Links are kept so re-enabling restores the previous grants. Users
        holding the role lose its permissions on their next resolution.

        Returns:
            The role, plus a ``RoleHasActiveUsersWarning`` when active users
            still hold it. Disabling is never blocked.
        """
        role = await self.get_role(role_id)
        role.active = False
        role = await self.roles.update(role)

        active_users = await self.users.count_active_by_role(role_id)
        warning = None
        if active_users:
            warning = RoleHasActiveUsersWarning(role_id, active_users)
            logger.warning(
                "role_disabled_with_active_users",
                role_id=str(role_id),
                active_users=active_users,
            )

        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_DISABLED,
            description=f"Disabled role {role.name}",
            table="roles",
        )
        return RoleDisableResult(role=role, active_users=active_users, warning=warning)

    # ============================================================
    # Role permissions
    # ============================================================

    async def list_permissions(self, role_id: UUID) -> list[RolePermission]:
        await self.get_role(role_id)
        return await self.links.list_for_role(role_id)

    async def _link(
        self,
        role_id: UUID,
        permissions: list[Permission],
        actor_id: UUID | None,
        note: str | None,
    ) -> tuple[list[RolePermission], int]:
        """Ensure one link per permission; returns the links and how many are new."""
        existing = {
            link.permission_id: link for link in await self.links.list_for_role(role_id)
        }
        result: list[RolePermission] = []
        new_links: list[RolePermission] = []
        for permission in permissions:
            link = existing.get(permission.id)
            if link is None:
                link = RolePermission(
                    role_id=role_id,
                    permission_id=permission.id,
                    permission=permission,
                    assigned_by_id=actor_id,
                    note=note,
                )
                new_links.append(link)
            else:
                link.assigned_by_id = actor_id
                if note is not None:
                    link.note = note
            result.append(link)

        await self.links.add_all(new_links)
        return result, len(new_links)

    async def assign(
        self,
        role_id: UUID,
        codes: Iterable[str],
        actor_id: UUID | None,
        note: str | None = None,
    ) -> list[RolePermission]:
        """Link a batch of codes to a role.

        Already-linked codes keep their single row and only get their
        provenance refreshed.

        Returns:
            The links for the requested codes

        Raises:
            RoleNotFoundError: If the role does not exist
            BatchValidationError: If any code is unknown or inactive; nothing
                is written in that case
        """
        role = await self.get_role(role_id)
        permissions = await self.catalog.require_active(codes)

        links, created = await self._link(role_id, permissions, actor_id, note)
        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_PERMISSIONS_ASSIGNED,
            description=(
                f"Assigned {len(links)} permission(s) to role {role.name} "
                f"({created} new)"
            ),
            table="role_permissions",
        )
        return links

    async def replace(
        self,
        role_id: UUID,
        codes: Iterable[str],
        actor_id: UUID | None,
        note: str | None = None,
    ) -> list[RolePermission]:
        """Make the role's links exactly ``codes``.

        Same validation as ``assign``; links outside ``codes`` are removed,
        including links to retired catalog entries.

        Returns:
            The role's links after the change
        """
        role = await self.get_role(role_id)
        permissions = await self.catalog.require_active(codes)
        wanted = {permission.id for permission in permissions}

        current = await self.links.list_for_role(role_id)
        stale = [link for link in current if link.permission_id not in wanted]
        await self.links.delete_all(stale)
        _, created = await self._link(role_id, permissions, actor_id, note)

        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_PERMISSIONS_REPLACED,
            description=(
                f"Replaced permissions of role {role.name}: "
                f"{created} added, {len(stale)} removed, {len(wanted)} total"
            ),
            table="role_permissions",
        )
        return await self.links.list_for_role(role_id)

    async def unassign(self, role_id: UUID, code: str, actor_id: UUID | None) -> bool:
        """Remove one code from a role.

        Returns:
            True if a link was removed, False if there was none

        Raises:
            PermissionNotFoundError: If the code is not in the catalog
            RoleNotFoundError: If the role does not exist
        """
        permission = await self.catalog.get_by_code(code, include_inactive=True)
        role = await self.get_role(role_id)

        link = await self.links.get(role_id, permission.id)
        if link is None:
            return False

        await self.links.delete_all([link])
        await self.audit.log_event(
            actor_id,
            AuditAction.ROLE_PERMISSION_REVOKED,
            description=f"Revoked {permission.code} from role {role.name}",
            table="role_permissions",
        )
        return True


RoleSvc = Annotated[RoleService, Depends(RoleService)]
