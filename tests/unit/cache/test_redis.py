"""Tests for the Redis cache wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taller.core.cache import RedisCache


pytestmark = pytest.mark.unit


def mock_redis_client(mock_redis, mock_client):
    mock_redis.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_redis.return_value.__aexit__ = AsyncMock(return_value=None)


class TestRedisCache:
    """Tests for RedisCache."""

    def test_key_prefix(self):
        assert RedisCache(prefix="taller:catalog:")._key("by_module") == "taller:catalog:by_module"
        assert RedisCache()._key("by_module") == "by_module"

    async def test_get_reads_prefixed_key(self):
        mock_client = MagicMock()
        mock_client.get = AsyncMock(return_value='{"a": 1}')

        with patch("taller.core.cache.redis.redis_client") as mock_redis:
            mock_redis_client(mock_redis, mock_client)

            value = await RedisCache(prefix="taller:catalog:").get("by_module")

        assert value == '{"a": 1}'
        mock_client.get.assert_awaited_once_with("taller:catalog:by_module")

    async def test_set_with_ttl_uses_setex(self):
        mock_client = MagicMock()
        mock_client.setex = AsyncMock()
        mock_client.set = AsyncMock()

        with patch("taller.core.cache.redis.redis_client") as mock_redis:
            mock_redis_client(mock_redis, mock_client)

            await RedisCache(prefix="p:").set("k", "v", ttl_seconds=300)

        mock_client.setex.assert_awaited_once_with("p:k", 300, "v")
        mock_client.set.assert_not_awaited()

    async def test_set_without_ttl(self):
        mock_client = MagicMock()
        mock_client.setex = AsyncMock()
        mock_client.set = AsyncMock()

        with patch("taller.core.cache.redis.redis_client") as mock_redis:
            mock_redis_client(mock_redis, mock_client)

            await RedisCache(prefix="p:").set("k", "v")

        mock_client.set.assert_awaited_once_with("p:k", "v")
        mock_client.setex.assert_not_awaited()

    async def test_delete_reports_whether_key_existed(self):
        mock_client = MagicMock()
        mock_client.delete = AsyncMock(side_effect=[1, 0])

        with patch("taller.core.cache.redis.redis_client") as mock_redis:
            mock_redis_client(mock_redis, mock_client)
            cache = RedisCache(prefix="p:")

            assert await cache.delete("k") is True
            assert await cache.delete("k") is False

        mock_client.delete.assert_awaited_with("p:k")
