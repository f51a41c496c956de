"""Composition root.

Builds the cache layer from settings. There is no module-level cache
singleton: each process creates its CacheService explicitly (usually once at
startup) and connects/disconnects it around its own lifecycle. Only the
logger is cached per process.

Usage:
    from taskcache.core.container import create_cache_service

    cache = create_cache_service()
    await cache.connect()
    ...
    await cache.disconnect()
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from taskcache.core.config import Settings, get_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from taskcache.domain.protocols.logger_protocol import LoggerProtocol
    from taskcache.infrastructure.cache.cache_service import CacheService


@lru_cache
def get_logger() -> "LoggerProtocol":
    """Return the process-wide logger.

    Adapter selection:
    - development: ConsoleAdapter (human-readable)
    - testing/ci/production: ConsoleAdapter (JSON)

    Returns:
        LoggerProtocol: Logger bound to the service name.
    """
    from taskcache.infrastructure.logging.console_adapter import ConsoleAdapter

    settings = get_settings()
    adapter = ConsoleAdapter(
        use_json=not settings.is_development,
        level=settings.log_level,
    )
    return adapter.bind(service=settings.app_name)


def create_cache_service(
    settings: Settings | None = None,
    *,
    redis_client: "Redis | None" = None,
    logger: "LoggerProtocol | None" = None,
) -> "CacheService":
    """Build a CacheService wired from settings.

    Args:
        settings: Configuration; get_settings() when omitted.
        redis_client: Pre-built client (tests pass fakeredis); an owned
            connection pool is created from settings.redis_url otherwise.
        logger: Logger; get_logger() when omitted.

    Returns:
        CacheService: Not yet connected; connects lazily on first use.
    """
    from taskcache.infrastructure.cache.cache_service import CacheService
    from taskcache.infrastructure.cache.redis_adapter import RedisAdapter

    settings = settings or get_settings()
    logger = logger or get_logger()

    adapter = RedisAdapter(
        logger=logger,
        redis_url=settings.redis_url,
        key_prefix=settings.cache_key_prefix,
        redis_client=redis_client,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        connect_timeout=settings.redis_connect_timeout,
        connect_retries=settings.redis_connect_retries,
        backoff_base=settings.redis_retry_backoff_base,
        backoff_max=settings.redis_retry_backoff_max,
    )
    return CacheService(store=adapter, logger=logger, settings=settings)
