"""Tests for the override repository's upsert."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from taller.core.permissions.models import OverrideOrigin, UserPermission
from taller.modules.permissions.repos import UserPermissionRepository, upsert_statement
from tests.helpers import add_user


pytestmark = pytest.mark.unit


def test_postgres_upsert_resolves_conflicts_on_the_pair():
    stmt = upsert_statement(uuid4(), uuid4(), False, OverrideOrigin.REVOKED, "baja")

    sql = str(stmt.compile(dialect=postgresql.dialect()))

    assert "ON CONFLICT (user_id, permission_id) DO UPDATE SET" in sql
    assert "granted = excluded.granted" in sql
    assert "origin = excluded.origin" in sql
    assert "comment = excluded.comment" in sql
    assert "updated_at = now()" in sql


async def test_upsert_overwrites_the_existing_row(db, catalog):
    user = await add_user(db)
    repo = UserPermissionRepository(db)

    first = await repo.upsert(user.id, catalog["ventas.ver"], True, OverrideOrigin.EXTRA)
    second = await repo.upsert(
        user.id, catalog["ventas.ver"], False, OverrideOrigin.REVOKED, "baja"
    )

    count = await db.scalar(
        select(func.count()).select_from(UserPermission).where(UserPermission.user_id == user.id)
    )
    assert count == 1
    assert second.id == first.id
    assert (second.granted, second.origin, second.comment) == (
        False,
        OverrideOrigin.REVOKED,
        "baja",
    )
    assert second.permission.code == "ventas.ver"
