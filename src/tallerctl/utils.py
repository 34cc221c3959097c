"""Utility functions for the tallerctl CLI."""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.audit import AuditService
from taller.core.cache import close_redis_pool
from taller.core.database import async_session_factory
from taller.modules.permissions.repos import (
    PermissionRepository,
    UserPermissionRepository,
)
from taller.modules.permissions.services import CatalogService, OverrideService
from taller.modules.roles.repos import RolePermissionRepository, RoleRepository
from taller.modules.roles.services import RoleService
from taller.modules.users.repos import UserRepository


T = TypeVar("T")


@dataclass
class Services:
    """The service graph FastAPI would inject, wired by hand."""

    session: AsyncSession
    catalog: CatalogService
    roles: RoleService
    overrides: OverrideService
    users: UserRepository


def build_services(session: AsyncSession) -> Services:
    """Wire services around one session; audit entries carry no actor."""
    audit = AuditService(session)
    users = UserRepository(session)
    catalog = CatalogService(PermissionRepository(session), audit)
    return Services(
        session=session,
        catalog=catalog,
        roles=RoleService(
            RoleRepository(session),
            RolePermissionRepository(session),
            catalog,
            users,
            audit,
        ),
        overrides=OverrideService(
            UserPermissionRepository(session), catalog, users, audit
        ),
        users=users,
    )


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: committed on success, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def run_with_services(func: Callable[[Services], Awaitable[T]]) -> T:
    """Run ``func`` inside a fresh unit of work and return its result."""

    async def runner() -> T:
        try:
            async with session_scope() as session:
                return await func(build_services(session))
        finally:
            # The pool is bound to this event loop
            await close_redis_pool()

    return asyncio.run(runner())
