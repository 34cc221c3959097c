"""Repositories for the permission catalog and user overrides."""

from collections.abc import Collection, Iterable
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import Insert, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm.attributes import set_committed_value

from taller.api.dependencies import DBSession
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    PermissionModule,
    UserPermission,
)


class PermissionRepository:
    """Repository for catalog entries and their module metadata."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def list_catalog(self, include_inactive: bool = False) -> list[Permission]:
        """List catalog entries ordered by module then code.

        Args:
            include_inactive: Also return deactivated entries

        Returns:
            Catalog entries
        """
        stmt = select(Permission).order_by(Permission.module, Permission.code)
        if not include_inactive:
            stmt = stmt.where(Permission.active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_code(self, code: str) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(Permission.code == code)
        )
        return result.scalar_one_or_none()

    async def get_by_codes(self, codes: Iterable[str]) -> list[Permission]:
        """Fetch all entries (active or not) matching any of ``codes`` in one query."""
        wanted = list(codes)
        if not wanted:
            return []
        result = await self.session.execute(
            select(Permission).where(Permission.code.in_(wanted))
        )
        return list(result.scalars().all())

    async def create(self, permission: Permission) -> Permission:
        self.session.add(permission)
        await self.session.flush()
        await self.session.refresh(permission)
        return permission

    async def update(self, permission: Permission) -> Permission:
        await self.session.flush()
        await self.session.refresh(permission)
        return permission

    async def list_modules(self) -> list[PermissionModule]:
        result = await self.session.execute(
            select(PermissionModule).order_by(PermissionModule.key)
        )
        return list(result.scalars().all())

    async def get_module(self, key: str) -> PermissionModule | None:
        result = await self.session.execute(
            select(PermissionModule).where(PermissionModule.key == key)
        )
        return result.scalar_one_or_none()

    async def create_module(self, module: PermissionModule) -> PermissionModule:
        self.session.add(module)
        await self.session.flush()
        return module


def upsert_statement(
    user_id: UUID,
    permission_id: UUID,
    granted: bool,
    origin: OverrideOrigin,
    comment: str | None,
) -> Insert:
    """PostgreSQL upsert of one override keyed on (user_id, permission_id)."""
    stmt = pg_insert(UserPermission).values(
        user_id=user_id,
        permission_id=permission_id,
        granted=granted,
        origin=origin,
        comment=comment,
    )
    return stmt.on_conflict_do_update(
        index_elements=[UserPermission.user_id, UserPermission.permission_id],
        set_={
            "granted": stmt.excluded.granted,
            "origin": stmt.excluded.origin,
            "comment": stmt.excluded.comment,
            "updated_at": func.now(),
        },
    )


class UserPermissionRepository:
    """Repository for per-user overrides."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def list_for_user(self, user_id: UUID) -> list[UserPermission]:
        result = await self.session.execute(
            select(UserPermission).where(UserPermission.user_id == user_id)
        )
        return list(result.scalars().all())

    async def get(self, user_id: UUID, permission_id: UUID) -> UserPermission | None:
        """Get the override for a (user, permission) pair, if any."""
        result = await self.session.execute(
            select(UserPermission).where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: UUID,
        permission: Permission,
        granted: bool,
        origin: OverrideOrigin,
        comment: str | None = None,
    ) -> UserPermission:
        """Create or overwrite the override for (user, permission).

        On PostgreSQL this is a single ``INSERT ... ON CONFLICT DO UPDATE``,
        so concurrent writers of the same pair end as last-write-wins
        instead of one of them hitting the unique constraint. Other
        dialects (sqlite in tests) read first and then write.

        Args:
            user_id: The user's UUID
            permission: Catalog entry being overridden
            granted: Grant (True) or revoke (False)
            origin: Provenance tag
            comment: Optional justification

        Returns:
            The stored override
        """
        if self.session.get_bind().dialect.name == "postgresql":
            stmt = upsert_statement(user_id, permission.id, granted, origin, comment)
            result = await self.session.scalars(
                stmt.returning(UserPermission),
                execution_options={"populate_existing": True},
            )
            row = result.one()
            set_committed_value(row, "permission", permission)
            return row

        row = await self.get(user_id, permission.id)
        if row is None:
            row = UserPermission(
                user_id=user_id,
                permission_id=permission.id,
                permission=permission,
                granted=granted,
                origin=origin,
                comment=comment,
            )
            self.session.add(row)
        else:
            row.granted = granted
            row.origin = origin
            row.comment = comment
        await self.session.flush()
        return row

    async def delete(self, row: UserPermission) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def delete_for_user(
        self,
        user_id: UUID,
        keep_origins: Collection[OverrideOrigin] = (),
    ) -> int:
        """Delete a user's overrides, sparing rows whose origin is in ``keep_origins``.

        Returns:
            Number of rows deleted
        """
        doomed = [
            row for row in await self.list_for_user(user_id) if row.origin not in keep_origins
        ]
        for row in doomed:
            await self.session.delete(row)
        await self.session.flush()
        return len(doomed)


# Type aliases for dependency injection
PermissionRepo = Annotated[PermissionRepository, Depends(PermissionRepository)]
UserPermissionRepo = Annotated[UserPermissionRepository, Depends(UserPermissionRepository)]
