"""Effective permission resolution.

A user's effective set is two layers: the permissions of their role, with
per-user overrides laid on top. An override always wins over the role, in
both directions. Only active catalog entries can ever be granted.
"""

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.permissions.exceptions import UserNotFoundError
from taller.core.permissions.models import (
    Permission,
    PermissionSource,
    Role,
    RolePermission,
    UserPermission,
)
from taller.core.permissions.schemas import (
    EffectivePermission,
    OverrideView,
    ResolvedPermissions,
    RolePermissionView,
)
from taller.modules.users.models import User


def merge_permissions(
    catalog: Sequence[Permission],
    role_codes: Iterable[str],
    overrides: Sequence[UserPermission],
) -> list[EffectivePermission]:
    """Combine role grants and overrides over the active catalog.

    Args:
        catalog: Active catalog entries, in the order the output should keep
        role_codes: Codes granted by the role
        overrides: The user's override rows, active or not

    Returns:
        One entry per active code that is either granted by the role or
        overridden. Codes with neither are left out and read as "not granted".
    """
    granted_by_role = set(role_codes)
    override_by_code = {row.permission.code: row for row in overrides}

    effective: list[EffectivePermission] = []
    for permission in catalog:
        if not permission.active:
            continue

        override = override_by_code.get(permission.code)
        if override is not None:
            granted = override.granted
            source = PermissionSource.EXTRA if granted else PermissionSource.REVOKED
        elif permission.code in granted_by_role:
            granted = True
            source = PermissionSource.ROLE
        else:
            continue

        effective.append(
            EffectivePermission(
                code=permission.code,
                name=permission.name,
                description=permission.description,
                module=permission.module,
                group=permission.group,
                granted=granted,
                source=source,
            )
        )

    return effective


def _sort_key(permission: Permission) -> tuple[str, str]:
    return (permission.module, permission.code)


class PermissionResolver:
    """Loads role grants and overrides for a user and merges them.

    Every call hits the database; nothing is cached between calls, so a
    change to a role, an override or the catalog shows up on the next
    resolution.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def resolve(self, user_id: UUID) -> ResolvedPermissions:
        """Resolve the effective permissions of a user.

        Args:
            user_id: The user's UUID

        Returns:
            Role grants, overrides and the merged effective set

        Raises:
            UserNotFoundError: If no user has this id
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return await self.resolve_user(user)

    async def resolve_user(self, user: User) -> ResolvedPermissions:
        """Resolve for an already loaded user."""
        catalog = await self._active_catalog()
        role_permissions = await self._role_permissions(user.role_id)
        overrides = await self._overrides(user.id)

        return ResolvedPermissions(
            user_id=user.id,
            role_id=user.role_id,
            base=[RolePermissionView.model_validate(p) for p in role_permissions],
            overrides=[
                OverrideView(
                    code=row.permission.code,
                    name=row.permission.name,
                    description=row.permission.description,
                    module=row.permission.module,
                    group=row.permission.group,
                    granted=row.granted,
                    origin=row.origin,
                    comment=row.comment,
                    active=row.permission.active,
                )
                for row in sorted(overrides, key=lambda row: _sort_key(row.permission))
            ],
            effective=merge_permissions(
                catalog,
                (p.code for p in role_permissions),
                overrides,
            ),
        )

    async def _active_catalog(self) -> list[Permission]:
        stmt = (
            select(Permission)
            .where(Permission.active.is_(True))
            .order_by(Permission.module, Permission.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _role_permissions(self, role_id: UUID | None) -> list[Permission]:
        """Active catalog entries linked to an active role."""
        if role_id is None:
            return []

        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .where(
                RolePermission.role_id == role_id,
                Role.active.is_(True),
                Permission.active.is_(True),
            )
            .order_by(Permission.module, Permission.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _overrides(self, user_id: UUID) -> list[UserPermission]:
        stmt = select(UserPermission).where(UserPermission.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
