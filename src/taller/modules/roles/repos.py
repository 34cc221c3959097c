"""Role and role-permission repositories."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, or_, select

from taller.api.dependencies import DBSession
from taller.core.permissions.models import Permission, Role, RolePermission


class RoleRepository:
    """Repository for Role database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, role: Role) -> Role:
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def get_by_id(self, role_id: UUID) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Role | None:
        """Get a role by exact (case-sensitive) name."""
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_roles(
        self,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> list[Role]:
        """List roles ordered by name.

        Args:
            search: Case-insensitive match on name or description
            include_inactive: Also return disabled roles

        Returns:
            Matching roles
        """
        stmt = select(Role).order_by(Role.name)
        if not include_inactive:
            stmt = stmt.where(Role.active.is_(True))
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Role.name).like(pattern),
                    func.lower(Role.description).like(pattern),
                )
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, role: Role) -> Role:
        await self.session.flush()
        await self.session.refresh(role)
        return role


class RolePermissionRepository:
    """Repository for the links between roles and catalog entries."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def list_for_role(self, role_id: UUID) -> list[RolePermission]:
        """All links of a role, active catalog entries or not, by module then code."""
        stmt = (
            select(RolePermission)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.module, Permission.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, role_id: UUID, permission_id: UUID) -> RolePermission | None:
        result = await self.session.execute(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_all(self, links: list[RolePermission]) -> list[RolePermission]:
        """Insert several links in one flush."""
        self.session.add_all(links)
        await self.session.flush()
        return links

    async def delete_all(self, links: list[RolePermission]) -> None:
        for link in links:
            await self.session.delete(link)
        await self.session.flush()

    async def count_by_roles(self, role_ids: list[UUID]) -> dict[UUID, int]:
        """Count links per role; roles without links are absent."""
        if not role_ids:
            return {}
        stmt = (
            select(RolePermission.role_id, func.count())
            .where(RolePermission.role_id.in_(role_ids))
            .group_by(RolePermission.role_id)
        )
        result = await self.session.execute(stmt)
        return {role_id: count for role_id, count in result.all()}


# Type aliases for dependency injection
RoleRepo = Annotated[RoleRepository, Depends(RoleRepository)]
RolePermissionRepo = Annotated[RolePermissionRepository, Depends(RolePermissionRepository)]
