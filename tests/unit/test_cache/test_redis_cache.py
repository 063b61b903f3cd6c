"""Unit tests for the Redis cache adapter."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import redis.asyncio as redis

from character_cache.cache.redis_cache import RedisCache, RedisCacheConfig
from character_cache.exceptions import CacheUnavailableError


def scan_results(*keys):
    """Build a scan_iter replacement yielding the given keys."""

    async def scan_iter(match=None, count=None):
        for key in keys:
            yield key

    return MagicMock(side_effect=scan_iter)


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.ping.return_value = True
    return client


@pytest.fixture
def cache(mock_client):
    return RedisCache(RedisCacheConfig(scan_count=100), client=mock_client)


class TestRedisCacheConnection:
    """Test connection management."""

    @pytest.mark.asyncio
    async def test_connect_creates_client_and_pings(self, mock_client):
        cache = RedisCache(RedisCacheConfig(redis_url="redis://cache:6379/1"))

        with patch("redis.asyncio.from_url", return_value=mock_client) as from_url:
            await cache.connect()

        from_url.assert_called_once_with(
            "redis://cache:6379/1", decode_responses=True, socket_timeout=5.0
        )
        mock_client.ping.assert_awaited_once()
        assert cache.connected

    @pytest.mark.asyncio
    async def test_connect_failure_raises(self, mock_client):
        mock_client.ping.side_effect = redis.ConnectionError("refused")
        cache = RedisCache(client=mock_client)

        with pytest.raises(CacheUnavailableError, match="Failed to connect"):
            await cache.connect()

        assert not cache.connected

    @pytest.mark.asyncio
    async def test_use_before_connect_raises(self):
        cache = RedisCache()

        with pytest.raises(CacheUnavailableError) as exc_info:
            await cache.get("characters:{}")

        assert exc_info.value.data["operation"] == "get"

    @pytest.mark.asyncio
    async def test_disconnect_closes_client(self, cache, mock_client):
        await cache.disconnect()

        mock_client.aclose.assert_awaited_once()
        assert not cache.connected

        # Second disconnect is a no-op
        await cache.disconnect()
        mock_client.aclose.assert_awaited_once()


class TestRedisCacheOperations:
    """Test the cache contract."""

    @pytest.mark.asyncio
    async def test_get_hit_and_miss(self, cache, mock_client):
        mock_client.get.side_effect = ["[]", None]

        assert await cache.get("characters:{}") == "[]"
        assert await cache.get('characters:{"status":"Dead"}') is None

    @pytest.mark.asyncio
    async def test_get_error_is_not_a_miss(self, cache, mock_client):
        mock_client.get.side_effect = redis.TimeoutError("timed out")

        with pytest.raises(CacheUnavailableError) as exc_info:
            await cache.get("characters:{}")

        assert exc_info.value.data == {"operation": "get", "key": "characters:{}"}
        assert isinstance(exc_info.value.__cause__, redis.TimeoutError)

    @pytest.mark.asyncio
    async def test_set_with_ttl_uses_setex(self, cache, mock_client):
        await cache.set_with_ttl("characters:{}", "[]", 3600)

        mock_client.setex.assert_awaited_once_with("characters:{}", 3600, "[]")

    @pytest.mark.asyncio
    async def test_set_error_raises(self, cache, mock_client):
        mock_client.setex.side_effect = OSError("broken pipe")

        with pytest.raises(CacheUnavailableError):
            await cache.set_with_ttl("characters:{}", "[]", 3600)

    @pytest.mark.asyncio
    async def test_list_keys_scans_namespace(self, cache, mock_client):
        mock_client.scan_iter = scan_results(
            "characters:{}", 'characters:{"status":"Alive"}'
        )

        keys = await cache.list_keys("characters")

        assert keys == ["characters:{}", 'characters:{"status":"Alive"}']
        mock_client.scan_iter.assert_called_once_with(match="characters:*", count=100)
        mock_client.keys.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_keys_error_raises(self, cache, mock_client):
        def failing_scan(match=None, count=None):
            raise redis.ConnectionError("lost")

        mock_client.scan_iter = MagicMock(side_effect=failing_scan)

        with pytest.raises(CacheUnavailableError) as exc_info:
            await cache.list_keys("characters")

        assert exc_info.value.data["operation"] == "keys"

    @pytest.mark.asyncio
    async def test_delete_many(self, cache, mock_client):
        mock_client.delete.return_value = 2

        deleted = await cache.delete_many(["characters:{}", "characters:{\"a\":1}"])

        assert deleted == 2
        mock_client.delete.assert_awaited_once_with(
            "characters:{}", "characters:{\"a\":1}"
        )

    @pytest.mark.asyncio
    async def test_delete_many_empty_is_noop(self, cache, mock_client):
        assert await cache.delete_many([]) == 0
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_many_error_raises(self, cache, mock_client):
        mock_client.delete.side_effect = redis.RedisError("READONLY")

        with pytest.raises(CacheUnavailableError):
            await cache.delete_many(["characters:{}"])


class TestRedisCacheHealth:
    """Test health reporting."""

    @pytest.mark.asyncio
    async def test_healthy(self, cache):
        health = await cache.health_check()

        assert health["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unhealthy_does_not_raise(self, cache, mock_client):
        mock_client.ping.side_effect = redis.ConnectionError("down")

        health = await cache.health_check()

        assert health["status"] == "unhealthy"
        assert "down" in health["error"]

    @pytest.mark.asyncio
    async def test_not_connected(self):
        assert (await RedisCache().health_check())["status"] == "not_connected"
