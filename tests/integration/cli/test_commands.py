"""Tests for tallerctl CLI commands."""

import asyncio

import pytest
from rich.console import Console
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from typer.testing import CliRunner

from taller.core.database import Base
from taller.core.permissions.defaults import (
    DEFAULT_CATALOG,
    DEFAULT_ROLES,
    ROLE_MECHANIC,
    ROLE_RECEPTION,
)
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    Role,
    RolePermission,
    UserPermission,
)
from tallerctl import __version__, utils
from tallerctl.cli import app
from tallerctl.commands import grant as grant_command
from tallerctl.commands import permissions as permissions_command
from tallerctl.commands import resync as resync_command
from tallerctl.commands import seed as seed_command
from tests.helpers import (
    add_override,
    add_permission,
    add_role,
    add_user,
    enable_sqlite_savepoints,
)


pytestmark = pytest.mark.integration

runner = CliRunner()


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    """A file database the CLI opens its own sessions against."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tallerctl.db'}", poolclass=NullPool
    )
    enable_sqlite_savepoints(engine)

    async def create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    monkeypatch.setattr(utils, "async_session_factory", factory)
    # Wide enough that no output line is wrapped or truncated
    for command in (grant_command, permissions_command, resync_command, seed_command):
        monkeypatch.setattr(command, "console", Console(width=200))

    yield factory

    asyncio.run(engine.dispose())


def run_in_session(factory, func):
    """Run ``func(session)`` and commit, the way a CLI invocation would."""

    async def runner_():
        async with factory() as session:
            result = await func(session)
            await session.commit()
            return result

    return asyncio.run(runner_())


async def role_links(session, role_name: str) -> dict[str, str | None]:
    """Codes linked to a role by name, with the note on each link."""
    result = await session.execute(
        select(Permission.code, RolePermission.note)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .where(Role.name == role_name)
    )
    return dict(result.all())


def _defaults_for(role_name: str) -> set[str]:
    return {entry.code for entry in DEFAULT_CATALOG if role_name in entry.roles}


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestSeedCommand:
    """Tests for tallerctl seed."""

    def test_seed_loads_catalog_and_roles(self, session_factory) -> None:
        result = runner.invoke(app, ["seed"])

        assert result.exit_code == 0, result.stdout
        assert f"permissions created: {len(DEFAULT_CATALOG)}" in result.stdout

        async def load(session):
            codes = (await session.execute(select(Permission.code))).scalars().all()
            roles = (await session.execute(select(Role.name))).scalars().all()
            return set(codes), set(roles)

        codes, roles = run_in_session(session_factory, load)
        assert codes == {entry.code for entry in DEFAULT_CATALOG}
        assert roles == set(DEFAULT_ROLES)
        mechanic = run_in_session(session_factory, lambda s: role_links(s, ROLE_MECHANIC))
        assert set(mechanic) == _defaults_for(ROLE_MECHANIC)

    def test_seed_twice_is_idempotent(self, session_factory) -> None:
        runner.invoke(app, ["seed"])

        result = runner.invoke(app, ["seed"])

        assert result.exit_code == 0, result.stdout
        assert "permissions created: 0" in result.stdout
        assert "roles created: 0" in result.stdout

    def test_seed_keeps_retired_codes_retired(self, session_factory) -> None:
        runner.invoke(app, ["seed"])
        retired = DEFAULT_CATALOG[0].code

        async def retire(session):
            permission = (
                await session.execute(select(Permission).where(Permission.code == retired))
            ).scalar_one()
            permission.active = False

        run_in_session(session_factory, retire)

        result = runner.invoke(app, ["seed"])

        async def load(session):
            return (
                await session.execute(select(Permission.active).where(Permission.code == retired))
            ).scalar_one()

        assert result.exit_code == 0, result.stdout
        assert run_in_session(session_factory, load) is False


class TestGrantCommand:
    """Tests for tallerctl grant."""

    def test_grant_codes(self, session_factory) -> None:
        runner.invoke(app, ["seed"])
        extra = sorted(_defaults_for(ROLE_MECHANIC) - _defaults_for(ROLE_RECEPTION))[0]

        result = runner.invoke(app, ["grant", ROLE_RECEPTION, extra, "--note", "apoyo"])

        assert result.exit_code == 0, result.stdout

        links = run_in_session(session_factory, lambda s: role_links(s, ROLE_RECEPTION))
        assert links[extra] == "apoyo"

    def test_grant_unknown_code_fails(self, session_factory) -> None:
        runner.invoke(app, ["seed"])

        result = runner.invoke(app, ["grant", ROLE_RECEPTION, "bogus.code"])

        assert result.exit_code == 1
        assert "bogus.code" in result.stdout

    def test_grant_unknown_role_fails(self, session_factory) -> None:
        result = runner.invoke(app, ["grant", "Inexistente", "ventas.ver"])

        assert result.exit_code == 1
        assert "Role not found" in result.stdout


class TestPermissionsCommand:
    """Tests for tallerctl permissions."""

    def test_shows_sources(self, session_factory) -> None:
        async def setup(session):
            ver = await add_permission(session, "ventas.ver")
            conciliar = await add_permission(session, "ventas.conciliar")
            inventario = await add_permission(session, "inventario.ver")
            user = await add_user(
                session, await add_role(session, [ver, conciliar]), email="caja@taller.test"
            )
            await add_override(session, user, conciliar, granted=False)
            await add_override(session, user, inventario, granted=True)

        run_in_session(session_factory, setup)

        result = runner.invoke(app, ["permissions", "caja@taller.test"])

        assert result.exit_code == 0, result.stdout
        assert "ventas.ver" in result.stdout
        assert "inventario.ver" in result.stdout
        assert "ventas.conciliar" not in result.stdout

        with_revoked = runner.invoke(app, ["permissions", "caja@taller.test", "--all"])

        assert "ventas.conciliar" in with_revoked.stdout
        assert "REVOKED" in with_revoked.stdout

    def test_user_without_permissions(self, session_factory) -> None:
        run_in_session(
            session_factory, lambda session: add_user(session, email="nuevo@taller.test")
        )

        result = runner.invoke(app, ["permissions", "nuevo@taller.test"])

        assert result.exit_code == 0
        assert "No permissions granted." in result.stdout

    def test_unknown_email_fails(self, session_factory) -> None:
        result = runner.invoke(app, ["permissions", "nadie@taller.test"])

        assert result.exit_code == 1
        assert "nadie@taller.test" in result.stdout


class TestResyncCommand:
    """Tests for tallerctl resync."""

    @pytest.fixture
    def user_email(self, session_factory) -> str:
        async def setup(session):
            ver = await add_permission(session, "ventas.ver")
            inventario = await add_permission(session, "inventario.ver")
            user = await add_user(session, await add_role(session, [ver]), email="caja@taller.test")
            await add_override(session, user, ver, granted=False)
            await add_override(session, user, inventario, granted=True)

        run_in_session(session_factory, setup)
        return "caja@taller.test"

    def _remaining_origins(self, session_factory) -> list[OverrideOrigin]:
        async def load(session):
            return (await session.execute(select(UserPermission.origin))).scalars().all()

        return run_in_session(session_factory, load)

    def test_resync_keep_manual(self, session_factory, user_email) -> None:
        result = runner.invoke(app, ["resync", user_email, "--keep-manual"])

        assert result.exit_code == 0, result.stdout
        assert "Removed 1 override(s), kept 1" in result.stdout
        assert self._remaining_origins(session_factory) == [OverrideOrigin.EXTRA]

    def test_resync_removes_everything(self, session_factory, user_email) -> None:
        result = runner.invoke(app, ["resync", user_email])

        assert result.exit_code == 0, result.stdout
        assert "Removed 2 override(s), kept 0" in result.stdout
        assert self._remaining_origins(session_factory) == []

    def test_unknown_email_fails(self, session_factory) -> None:
        result = runner.invoke(app, ["resync", "nadie@taller.test"])

        assert result.exit_code == 1
        assert "nadie@taller.test" in result.stdout
