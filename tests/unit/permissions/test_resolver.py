"""Tests for effective permission resolution."""

from uuid import uuid4

import pytest

from taller.core.permissions.exceptions import UserNotFoundError
from taller.core.permissions.models import (
    OverrideOrigin,
    Permission,
    PermissionSource,
    UserPermission,
)
from taller.core.permissions.resolver import PermissionResolver, merge_permissions
from tests.helpers import add_override, add_permission, add_role, add_user


pytestmark = pytest.mark.unit


def _permission(code: str, active: bool = True) -> Permission:
    return Permission(code=code, name=code, module=code.split(".")[0], active=active)


def _override(permission: Permission, granted: bool) -> UserPermission:
    return UserPermission(
        user_id=uuid4(),
        permission=permission,
        granted=granted,
        origin=OverrideOrigin.EXTRA if granted else OverrideOrigin.REVOKED,
    )


class TestMergePermissions:
    """Tests for the pure merge of role grants and overrides."""

    def test_role_grants_without_overrides(self):
        """Codes of the role are granted with source ROLE."""
        catalog = [_permission("inventario.ver"), _permission("ventas.ver")]

        effective = merge_permissions(catalog, ["ventas.ver"], [])

        assert [(e.code, e.granted, e.source) for e in effective] == [
            ("ventas.ver", True, PermissionSource.ROLE)
        ]

    def test_revoke_override_beats_role(self):
        """An override removing a role code wins."""
        ventas = _permission("ventas.ver")

        effective = merge_permissions([ventas], ["ventas.ver"], [_override(ventas, False)])

        assert len(effective) == 1
        assert effective[0].granted is False
        assert effective[0].source == PermissionSource.REVOKED

    def test_extra_override_adds_code(self):
        """An override granting a code the role lacks adds it."""
        mov = _permission("inventario.movimientos")

        effective = merge_permissions([mov], [], [_override(mov, True)])

        assert effective[0].granted is True
        assert effective[0].source == PermissionSource.EXTRA

    def test_source_follows_granted_not_origin(self):
        """A grant stored with origin REVOKED still reads as EXTRA."""
        ventas = _permission("ventas.ver")
        row = _override(ventas, True)
        row.origin = OverrideOrigin.REVOKED

        effective = merge_permissions([ventas], [], [row])

        assert effective[0].source == PermissionSource.EXTRA

    def test_inactive_catalog_entry_never_granted(self):
        """Inactive codes are skipped whatever the role or overrides say."""
        retired = _permission("ventas.conciliar", active=False)

        effective = merge_permissions(
            [retired], ["ventas.conciliar"], [_override(retired, True)]
        )

        assert effective == []

    def test_code_with_neither_is_absent(self):
        """Codes with no role grant and no override are left out."""
        effective = merge_permissions([_permission("reportes.ver")], [], [])

        assert effective == []

    def test_keeps_catalog_order(self):
        """Output follows the order of the catalog passed in."""
        catalog = [_permission("a.uno"), _permission("b.dos"), _permission("c.tres")]

        effective = merge_permissions(catalog, ["c.tres", "a.uno", "b.dos"], [])

        assert [e.code for e in effective] == ["a.uno", "b.dos", "c.tres"]


class TestPermissionResolver:
    """Tests for PermissionResolver against the database."""

    async def test_override_precedence(self, db, catalog):
        """Overrides decide the outcome regardless of role membership."""
        role = await add_role(db, [catalog["ventas.ver"], catalog["inventario.ver"]])
        user = await add_user(db, role)
        await add_override(db, user, catalog["ventas.ver"], granted=False)
        await add_override(db, user, catalog["ventas.conciliar"], granted=True)

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.is_granted("ventas.ver") is False
        assert resolved.is_granted("ventas.conciliar") is True
        assert resolved.is_granted("inventario.ver") is True
        assert {p.code for p in resolved.base} == {"ventas.ver", "inventario.ver"}
        assert len(resolved.overrides) == 2

    async def test_role_fallback(self, db, catalog):
        """Without overrides the effective set is exactly the role's codes."""
        role = await add_role(db, [catalog["inventario.ver"]])
        user = await add_user(db, role)

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.granted_codes() == ["inventario.ver"]
        assert resolved.role_id == role.id

    async def test_deactivated_code_disappears(self, db, catalog):
        """Deactivating a catalog entry removes it on the next resolution."""
        role = await add_role(db, [catalog["inventario.ver"]])
        user = await add_user(db, role)
        await add_override(db, user, catalog["inventario.movimientos"], granted=True)

        catalog["inventario.ver"].active = False
        catalog["inventario.movimientos"].active = False
        await db.flush()

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.granted_codes() == []
        assert resolved.base == []
        # The override row is still listed, flagged inactive
        assert [(o.code, o.active) for o in resolved.overrides] == [
            ("inventario.movimientos", False)
        ]

    async def test_user_without_role(self, db, catalog):
        """A user with no role only gets override grants."""
        user = await add_user(db)
        await add_override(db, user, catalog["ventas.ver"], granted=True)

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.role_id is None
        assert resolved.base == []
        assert resolved.granted_codes() == ["ventas.ver"]

    async def test_inactive_role_contributes_nothing(self, db, catalog):
        """A disabled role grants nothing but overrides still apply."""
        role = await add_role(db, [catalog["inventario.ver"]], active=False)
        user = await add_user(db, role)
        await add_override(db, user, catalog["ventas.ver"], granted=True)

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.base == []
        assert resolved.granted_codes() == ["ventas.ver"]

    async def test_unknown_user(self, db):
        """Resolving a missing user raises UserNotFoundError."""
        with pytest.raises(UserNotFoundError):
            await PermissionResolver(db).resolve(uuid4())

    async def test_effective_ordered_by_module_then_code(self, db):
        """Effective entries come out sorted by (module, code)."""
        codes = ["ventas.ver", "inventario.ver", "inventario.alertas", "clientes.listar"]
        permissions = [await add_permission(db, code) for code in codes]
        user = await add_user(db, await add_role(db, permissions))

        resolved = await PermissionResolver(db).resolve(user.id)

        assert resolved.granted_codes() == [
            "clientes.listar",
            "inventario.alertas",
            "inventario.ver",
            "ventas.ver",
        ]
