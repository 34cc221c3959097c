"""Helpers that persist test data through a session."""

from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from taller.core.auth.backend import create_access_token
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    Role,
    RolePermission,
    UserPermission,
)
from taller.modules.users.models import User
from tests.factories import RoleFactory, UserFactory


async def add_permission(
    db: AsyncSession,
    code: str,
    module: str | None = None,
    active: bool = True,
    group: str | None = None,
) -> Permission:
    """Persist a catalog entry."""
    permission = Permission(
        code=code,
        name=code.replace(".", " ").title(),
        module=module or code.split(".")[0],
        group=group,
        active=active,
    )
    db.add(permission)
    await db.flush()
    await db.refresh(permission)
    return permission


async def add_role(
    db: AsyncSession,
    permissions: Iterable[Permission] = (),
    active: bool = True,
    name: str | None = None,
) -> Role:
    """Persist a role linked to ``permissions``."""
    kwargs = {"active": active}
    if name:
        kwargs["name"] = name
    role = RoleFactory.build(**kwargs)
    db.add(role)
    await db.flush()
    for permission in permissions:
        db.add(
            RolePermission(
                role_id=role.id,
                permission_id=permission.id,
                permission=permission,
            )
        )
    await db.flush()
    await db.refresh(role)
    return role


async def add_user(
    db: AsyncSession,
    role: Role | None = None,
    is_active: bool = True,
    email: str | None = None,
) -> User:
    """Persist a user holding ``role``."""
    kwargs = {"role_id": role.id if role else None, "is_active": is_active}
    if email:
        kwargs["email"] = email
    user = UserFactory.build(**kwargs)
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def add_override(
    db: AsyncSession,
    user: User,
    permission: Permission,
    granted: bool,
    origin: OverrideOrigin | None = None,
) -> UserPermission:
    """Persist a per-user override."""
    row = UserPermission(
        user_id=user.id,
        permission_id=permission.id,
        permission=permission,
        granted=granted,
        origin=origin or (OverrideOrigin.EXTRA if granted else OverrideOrigin.REVOKED),
    )
    db.add(row)
    await db.flush()
    return row


def auth_headers(user_id: UUID, permissions: Iterable[str] = ()) -> dict[str, str]:
    """Authorization headers carrying a session token for ``user_id``."""
    token = create_access_token(user_id, permissions)
    return {"Authorization": f"Bearer {token}"}



def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite emit BEGIN/SAVEPOINT itself so nested transactions work."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class FakeRedis:
    """Dict-backed stand-in for the few Redis commands the cache issues.

    Expiry is recorded but never enforced.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.store[key] = value

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> int:
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def client_factory(self):
        """A replacement for ``taller.core.cache.redis.redis_client``."""

        @asynccontextmanager
        async def client() -> AsyncGenerator["FakeRedis", None]:
            yield self

        return client
