"""Tests for the permission catalog service."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from taller.config import settings
from taller.core.audit import AuditService
from taller.core.errors import ConflictError
from taller.core.permissions.exceptions import BatchValidationError, PermissionNotFoundError
from taller.modules.permissions.repos import PermissionRepository
from taller.modules.permissions.schemas import ModuleGroup, PermissionCreate, PermissionUpdate
from taller.modules.permissions.services import CatalogService
from tests.helpers import add_permission


pytestmark = pytest.mark.unit


@pytest.fixture
def service(db) -> CatalogService:
    return CatalogService(PermissionRepository(db), AuditService(db))


class TestLookup:
    async def test_inactive_hidden_by_default(self, db, catalog, service):
        await add_permission(db, "ventas.anular", active=False)

        active = [p.code for p in await service.list_catalog()]
        everything = [p.code for p in await service.list_catalog(include_inactive=True)]

        assert "ventas.anular" not in active
        assert "ventas.anular" in everything

    async def test_get_by_code(self, db, catalog, service):
        permission = await service.get_by_code("ventas.ver")

        assert permission.id == catalog["ventas.ver"].id

    async def test_get_unknown_code(self, db, catalog, service):
        with pytest.raises(PermissionNotFoundError) as exc_info:
            await service.get_by_code("bogus.code")

        assert exc_info.value.code == "bogus.code"

    async def test_require_active_keeps_request_order(self, db, catalog, service):
        permissions = await service.require_active(["ventas.ver", "inventario.ver"])

        assert [p.code for p in permissions] == ["ventas.ver", "inventario.ver"]

    async def test_require_active_names_every_bad_code(self, db, catalog, service):
        await add_permission(db, "ventas.anular", active=False)

        with pytest.raises(BatchValidationError) as exc_info:
            await service.require_active(["ventas.anular", "ventas.ver", "bogus.code"])

        assert exc_info.value.codes == ["bogus.code", "ventas.anular"]


class TestWrites:
    async def test_create_duplicate_code(self, db, catalog, service):
        data = PermissionCreate(code="ventas.ver", name="Ver ventas", module="ventas")

        with pytest.raises(ConflictError):
            await service.create_permission(data, None)

    async def test_deactivate_keeps_row(self, db, catalog, service):
        permission = await service.deactivate_permission("ventas.ver", None)

        assert permission.active is False
        assert (await service.get_by_code("ventas.ver", include_inactive=True)).active is False
        with pytest.raises(PermissionNotFoundError):
            await service.get_by_code("ventas.ver")

    async def test_writes_invalidate_grouped_cache(self, db, catalog, service):
        before = await service.list_by_module()
        await service.create_permission(
            PermissionCreate(code="ventas.anular", name="Anular ventas", module="ventas"), None
        )

        after = await service.list_by_module()

        ventas_before = next(g for g in before if g.key == "ventas")
        ventas_after = next(g for g in after if g.key == "ventas")
        assert len(ventas_after.permissions) == len(ventas_before.permissions) + 1


class TestGroupedCache:
    async def test_listing_is_stored_as_json_with_ttl(self, db, catalog, service, fake_redis):
        groups = await service.list_by_module()

        key = "taller:catalog:by_module"
        assert fake_redis.ttls[key] == settings.catalog_cache_ttl_seconds
        cached = json.loads(fake_redis.store[key])
        assert [g["key"] for g in cached] == [g.key for g in groups]

    async def test_cached_listing_is_served_without_the_database(
        self, db, catalog, service, fake_redis
    ):
        first = await service.list_by_module()
        service.repo = None  # any database access would now fail

        second = await service.list_by_module()

        assert second == first
        assert all(isinstance(g, ModuleGroup) for g in second)

    async def test_update_deletes_the_cached_listing(self, db, catalog, service, fake_redis):
        await service.list_by_module()

        await service.update_permission(
            "ventas.ver", PermissionUpdate(name="Consultar ventas"), None
        )

        assert "taller:catalog:by_module" not in fake_redis.store

    async def test_unreachable_redis_falls_back_to_the_database(self, db, catalog, service):
        mock_client = MagicMock()
        mock_client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        mock_client.setex = AsyncMock(side_effect=RedisConnectionError("refused"))
        mock_client.delete = AsyncMock(side_effect=RedisConnectionError("refused"))

        with patch("taller.core.cache.redis.redis_client") as mock_redis:
            mock_redis.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_redis.return_value.__aexit__ = AsyncMock(return_value=None)

            groups = await service.list_by_module()
            await service.deactivate_permission("ventas.conciliar", None)

        assert {g.key for g in groups} >= {"inventario", "ventas"}
        mock_client.delete.assert_awaited_once()
