"""Shared pytest fixtures.

Every integration test gets its own fakeredis server, so tests never share
keys. Backend outages are simulated with ``FakeServer.connected = False``,
which makes every command raise redis ConnectionError.
"""

from unittest.mock import MagicMock

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from taskcache.core.config import Settings
from taskcache.core.container import create_cache_service
from taskcache.core.enums import Environment
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics
from taskcache.infrastructure.cache.redis_adapter import RedisAdapter

TEST_PREFIX = "test:"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests without a backend")
    config.addinivalue_line(
        "markers", "integration: Integration tests against in-memory Redis"
    )


@pytest.fixture
def fake_server():
    """Isolated in-memory Redis server."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(fake_server):
    """Async fakeredis client bound to this test's server."""
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    # Commands fail immediately while the fake server is offline
    client.connection_pool.connection_kwargs["retry"] = Retry(NoBackoff(), 0)
    yield client
    await client.aclose()


@pytest.fixture
def logger():
    """Mock logger satisfying LoggerProtocol."""
    return MagicMock()


@pytest.fixture
def metrics():
    return CacheMetrics()


@pytest.fixture
def settings():
    """Test settings: no connection retries, no backoff."""
    return Settings(
        environment=Environment.TESTING,
        cache_key_prefix=TEST_PREFIX,
        redis_connect_retries=0,
        redis_retry_backoff_base=0.0,
        redis_retry_backoff_max=0.0,
    )


@pytest_asyncio.fixture
async def adapter(redis_client, logger):
    """Connected RedisAdapter using the test prefix."""
    store = RedisAdapter(
        logger=logger,
        key_prefix=TEST_PREFIX,
        redis_client=redis_client,
        connect_retries=0,
        backoff_base=0.0,
    )
    await store.connect()
    yield store
    await store.disconnect()


@pytest_asyncio.fixture
async def cache(redis_client, logger, settings):
    """Connected CacheService built through the composition root."""
    service = create_cache_service(settings, redis_client=redis_client, logger=logger)
    await service.connect()
    yield service
    await service.disconnect()


@pytest.fixture
def backend_down(fake_server):
    """Take the fake backend offline for the rest of the test."""
    fake_server.connected = False
    yield
    fake_server.connected = True
