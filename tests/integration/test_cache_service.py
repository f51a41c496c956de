"""Integration tests for the CacheService facade.

Covers:
- Lifecycle (connect/disconnect, async context manager)
- Generic JSON primitives and typed reads
- Multi-tenant isolation through key prefixes
- Stats
"""

from dataclasses import dataclass

import pytest

from taskcache.core.config import Settings
from taskcache.core.container import create_cache_service
from taskcache.core.enums import ConnectionState, Environment
from taskcache.core.errors import ValidationError


@dataclass
class Task:
    id: int
    title: str
    done: bool = False


def _tenant(prefix: str, redis_client, logger):
    settings = Settings(
        environment=Environment.TESTING,
        cache_key_prefix=prefix,
        redis_connect_retries=0,
    )
    return create_cache_service(settings, redis_client=redis_client, logger=logger)


@pytest.mark.integration
class TestLifecycle:
    """connect / disconnect."""

    @pytest.mark.asyncio
    async def test_async_context_manager(self, redis_client, logger, settings):
        """Test async with connects on entry and disconnects on exit."""
        async with create_cache_service(
            settings, redis_client=redis_client, logger=logger
        ) as service:
            assert service.store.state == ConnectionState.CONNECTED
            await service.set("k", {"v": 1})

        assert service.store.state == ConnectionState.DISCONNECTED
        logger.info.assert_any_call("Cache disconnected")


@pytest.mark.integration
class TestGenericPrimitives:
    """JSON get/set and pass-through primitives."""

    @pytest.mark.asyncio
    async def test_typed_get(self, cache):
        """Test values decode into the requested type."""
        await cache.set("task:1", Task(id=1, title="write tests"), ttl=60)
        assert await cache.get("task:1", Task) == Task(id=1, title="write tests")

    @pytest.mark.asyncio
    async def test_nx(self, cache):
        assert await cache.set("once", 1, nx=True) is True
        assert await cache.set("once", 2, nx=True) is False
        assert await cache.get("once") == 1

    @pytest.mark.asyncio
    async def test_mget(self, cache):
        await cache.set("a", [1])
        assert await cache.mget("a", "b") == [[1], None]

    @pytest.mark.asyncio
    async def test_eight_day_ttl_rejected(self, cache):
        """Test the 7-day ceiling applies to generic writes."""
        with pytest.raises(ValidationError):
            await cache.set("k", 1, ttl=8 * 24 * 60 * 60)
        await cache.set("k", 1, ttl=7 * 24 * 60 * 60)
        assert await cache.ttl("k") > 0

    @pytest.mark.asyncio
    async def test_delete_exists_expire(self, cache):
        await cache.set("k", 1)
        assert await cache.exists("k") is True
        assert await cache.expire("k", 10) is True
        assert await cache.delete("k") == 1
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_sets_and_hashes(self, cache):
        """Test set and hash primitives pass through."""
        await cache.sadd("tags", "a", "b")
        await cache.srem("tags", "a")
        assert await cache.smembers("tags") == {"b"}
        assert await cache.sismember("tags", "b") is True

        await cache.hset("h", mapping={"x": "1", "y": "2"})
        await cache.hdel("h", "y")
        assert await cache.hget("h", "x") == "1"
        assert await cache.hgetall("h") == {"x": "1"}

    @pytest.mark.asyncio
    async def test_delete_by_pattern(self, cache):
        await cache.set("task:1", 1)
        await cache.set("task:2", 2)
        await cache.set("other", 3)
        assert await cache.delete_by_pattern("task:*") == 2
        assert await cache.keys() == ["other"]


@pytest.mark.integration
class TestTenantIsolation:
    """Two services sharing one Redis."""

    @pytest.mark.asyncio
    async def test_same_session_id_does_not_collide(self, redis_client, logger):
        """Test identical logical keys under different prefixes stay separate."""
        auth = _tenant("auth:", redis_client, logger)
        tasks = _tenant("tasks:", redis_client, logger)

        await auth.store_session("s1", {"user_id": "1", "svc": "auth"})
        await tasks.store_session("s1", {"user_id": "1", "svc": "tasks"})

        assert (await auth.get_session("s1"))["svc"] == "auth"
        assert (await tasks.get_session("s1"))["svc"] == "tasks"

        await auth.delete_user_data("1")
        assert await auth.get_session("s1") is None
        assert (await tasks.get_session("s1"))["svc"] == "tasks"

    @pytest.mark.asyncio
    async def test_rate_limits_are_per_prefix(self, redis_client, logger):
        auth = _tenant("auth:", redis_client, logger)
        tasks = _tenant("tasks:", redis_client, logger)

        await auth.increment_rate_limit("ip", 60)
        await auth.increment_rate_limit("ip", 60)
        result = await tasks.increment_rate_limit("ip", 60)

        assert result.count == 1


@pytest.mark.integration
class TestStats:
    """get_stats."""

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        """Test backend figures, connection state and namespace counters."""
        await cache.store_session("s1", {"user_id": "1"})
        await cache.get_session("s1")
        await cache.get_session("missing")

        stats = await cache.get_stats()

        assert stats["key_count"] == 2
        assert stats["connection_state"] == "connected"
        assert stats["namespaces"]["session"]["hits"] == 1
        assert stats["namespaces"]["session"]["misses"] == 1

    @pytest.mark.asyncio
    async def test_stats_degrade(self, cache, backend_down):
        """Test stats still answer during an outage."""
        stats = await cache.get_stats()

        assert stats["key_count"] is None
        assert stats["memory_usage"] is None
        assert stats["connection_state"] == "disconnected"
