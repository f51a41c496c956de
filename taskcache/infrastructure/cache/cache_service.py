"""CacheService facade.

Single entry point the auth and task services use. It wires one store
adapter and one metrics tracker into the sub-components and exposes their
operations under one object:

    - generic primitives (get/set/delete/exists/expire/ttl, sets, hashes)
    - sessions, refresh tokens, rate limiting, login attempts, profiles
    - maintenance and health

Usage:
    from taskcache.core.container import create_cache_service

    async with create_cache_service() as cache:
        await cache.store_session("sess_1700000000_ab12", session, user_id="42")
        decision = await cache.check_rate_limit("general:10.0.0.1", 900, 100)
"""

import builtins
from collections.abc import Iterable
from types import TracebackType
from typing import Any, Self

from taskcache.core.config import Settings, get_settings
from taskcache.core.errors import BackendUnavailableError
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics
from taskcache.infrastructure.cache.health import HealthMonitor, HealthReport
from taskcache.infrastructure.cache.login_attempts import LoginAttemptTracker
from taskcache.infrastructure.cache.maintenance import MaintenanceWorker
from taskcache.infrastructure.cache.profile_cache import ProfileCache, ProfileLoader
from taskcache.infrastructure.cache.rate_limiter import (
    RateLimitDecision,
    RateLimiter,
    RateLimitResult,
)
from taskcache.infrastructure.cache.session_store import SessionStore
from taskcache.infrastructure.cache.token_vault import TokenVault


class CacheService:
    """Cache, rate-limiting and session layer over one key-value store.

    Args:
        store: Store adapter (owns prefix and connection).
        logger: Structured logger shared by all components.
        settings: TTLs, limits and environment; defaults to get_settings().
        metrics: Hit/miss tracker; a fresh one when omitted.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        settings: Settings | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._store = store
        self._logger = logger
        self.metrics = metrics or CacheMetrics()

        self.sessions = SessionStore(
            store=store,
            logger=logger,
            metrics=self.metrics,
            default_ttl=settings.session_ttl_seconds,
        )
        self.tokens = TokenVault(
            store=store,
            logger=logger,
            metrics=self.metrics,
            default_ttl=settings.refresh_token_ttl_seconds,
        )
        self.rate_limiter = RateLimiter(
            store=store,
            logger=logger,
            metrics=self.metrics,
            default_window=settings.rate_limit_window_seconds,
        )
        self.login_attempts = LoginAttemptTracker(
            store=store,
            logger=logger,
            metrics=self.metrics,
            window_seconds=settings.login_attempt_window_seconds,
            max_attempts=settings.max_login_attempts,
        )
        self.profiles = ProfileCache(
            store=store,
            logger=logger,
            metrics=self.metrics,
            default_ttl=settings.profile_ttl_seconds,
        )
        self.maintenance = MaintenanceWorker(
            store=store,
            logger=logger,
            batch_size=settings.maintenance_batch_size,
            session_ttl=settings.session_ttl_seconds,
            refresh_token_ttl=settings.refresh_token_ttl_seconds,
            allow_flush=not settings.is_production,
            interval_seconds=settings.maintenance_interval_seconds,
        )
        self.health = HealthMonitor(
            store=store,
            logger=logger,
            latency_threshold_ms=settings.health_latency_threshold_ms,
        )

    @property
    def store(self) -> CacheStoreProtocol:
        """Underlying store adapter."""
        return self._store

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------
    async def connect(self) -> None:
        """Connect to the backend (retries with backoff)."""
        await self._store.connect()

    async def disconnect(self) -> None:
        """Stop background maintenance and close the connection."""
        await self.maintenance.stop()
        await self._store.disconnect()

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # ---------------------------------------------------------------------
    # Generic primitives (JSON values)
    # ---------------------------------------------------------------------
    async def get(self, key: str, type_: Any = None) -> Any:
        """Decoded JSON value, or None if absent or undecodable."""
        return await self._store.get_json(key, type_)

    async def mget(self, *keys: str, type_: Any = None) -> list[Any]:
        """Decoded JSON values in key order (None for missing keys)."""
        return await self._store.mget_json(*keys, type_=type_)

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: int | None = None,
        nx: bool = False,
    ) -> bool:
        """Store a JSON-serializable value.

        Returns:
            False only when nx=True and the key already existed.
        """
        return await self._store.set_json(key, value, ttl=ttl, nx=nx)

    async def delete(self, *keys: str) -> int:
        return await self._store.delete(*keys)

    async def exists(self, key: str) -> bool:
        return await self._store.exists(key)

    async def expire(self, key: str, seconds: int) -> bool:
        return await self._store.expire(key, seconds)

    async def ttl(self, key: str) -> int:
        return await self._store.ttl(key)

    async def sadd(self, key: str, *members: str) -> int:
        return await self._store.sadd(key, *members)

    async def srem(self, key: str, *members: str) -> int:
        return await self._store.srem(key, *members)

    async def smembers(self, key: str) -> builtins.set[str]:
        return await self._store.smembers(key)

    async def sismember(self, key: str, member: str) -> bool:
        return await self._store.sismember(key, member)

    async def hset(
        self,
        key: str,
        field: str | None = None,
        value: str | None = None,
        *,
        mapping: dict[str, str] | None = None,
    ) -> int:
        return await self._store.hset(key, field, value, mapping=mapping)

    async def hget(self, key: str, field: str) -> str | None:
        return await self._store.hget(key, field)

    async def hdel(self, key: str, *fields: str) -> int:
        return await self._store.hdel(key, *fields)

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._store.hgetall(key)

    async def keys(self, pattern: str = "*") -> list[str]:
        """Logical keys matching pattern. O(keyspace); admin use only."""
        return await self._store.keys(pattern)

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. O(keyspace); admin use only."""
        return await self._store.delete_by_pattern(pattern)

    # ---------------------------------------------------------------------
    # Sessions
    # ---------------------------------------------------------------------
    async def store_session(
        self,
        session_id: str,
        data: Any,
        ttl_seconds: int | None = None,
        *,
        user_id: str | None = None,
    ) -> None:
        await self.sessions.store_session(session_id, data, ttl_seconds, user_id=user_id)

    async def get_session(self, session_id: str, type_: Any = None) -> Any:
        return await self.sessions.get_session(session_id, type_)

    async def delete_session(self, session_id: str, *, user_id: str | None = None) -> bool:
        return await self.sessions.delete_session(session_id, user_id=user_id)

    async def touch_session(self, session_id: str, ttl_seconds: int | None = None) -> bool:
        return await self.sessions.touch_session(session_id, ttl_seconds)

    async def set_user_sessions(
        self, user_id: str, session_ids: Iterable[str], ttl: int | None = None
    ) -> None:
        await self.sessions.set_user_sessions(user_id, session_ids, ttl)

    async def get_user_sessions(self, user_id: str) -> list[str]:
        return await self.sessions.get_user_sessions(user_id)

    # ---------------------------------------------------------------------
    # Refresh tokens
    # ---------------------------------------------------------------------
    async def store_refresh_token(
        self,
        token_id: str,
        data: Any,
        ttl_seconds: int | None = None,
        *,
        user_id: str | None = None,
    ) -> None:
        await self.tokens.store_refresh_token(token_id, data, ttl_seconds, user_id=user_id)

    async def get_refresh_token(self, token_id: str, type_: Any = None) -> Any:
        return await self.tokens.get_refresh_token(token_id, type_)

    async def delete_refresh_token(self, token_id: str, *, user_id: str | None = None) -> bool:
        return await self.tokens.delete_refresh_token(token_id, user_id=user_id)

    async def get_user_refresh_tokens(self, user_id: str) -> list[str]:
        return await self.tokens.get_user_refresh_tokens(user_id)

    # ---------------------------------------------------------------------
    # Rate limiting and login attempts
    # ---------------------------------------------------------------------
    async def increment_rate_limit(
        self, identifier: str, window_seconds: int | None = None
    ) -> RateLimitResult:
        return await self.rate_limiter.increment_rate_limit(identifier, window_seconds)

    async def check_rate_limit(
        self, identifier: str, window_seconds: int, max_requests: int
    ) -> RateLimitDecision:
        return await self.rate_limiter.check_rate_limit(identifier, window_seconds, max_requests)

    async def get_rate_limit(self, identifier: str) -> RateLimitResult | None:
        return await self.rate_limiter.get_rate_limit(identifier)

    async def reset_rate_limit(self, identifier: str) -> bool:
        return await self.rate_limiter.reset_rate_limit(identifier)

    async def record_login_attempt(self, email: str) -> int:
        return await self.login_attempts.record_login_attempt(email)

    async def get_login_attempts(self, email: str) -> int:
        return await self.login_attempts.get_login_attempts(email)

    async def clear_login_attempts(self, email: str) -> bool:
        return await self.login_attempts.clear_login_attempts(email)

    async def is_login_locked(self, email: str) -> bool:
        return await self.login_attempts.is_login_locked(email)

    # ---------------------------------------------------------------------
    # Profiles
    # ---------------------------------------------------------------------
    async def set_user_profile(self, user_id: str, profile: Any, ttl: int | None = None) -> None:
        await self.profiles.set_user_profile(user_id, profile, ttl)

    async def get_user_profile(self, user_id: str, type_: Any = None) -> Any:
        return await self.profiles.get_user_profile(user_id, type_)

    async def get_or_load_user_profile(
        self,
        user_id: str,
        loader: ProfileLoader,
        ttl: int | None = None,
        type_: Any = None,
    ) -> Any:
        return await self.profiles.get_or_load_user_profile(user_id, loader, ttl, type_)

    async def delete_user_profile(self, user_id: str) -> bool:
        return await self.profiles.delete_user_profile(user_id)

    # ---------------------------------------------------------------------
    # Maintenance and health
    # ---------------------------------------------------------------------
    async def delete_user_data(self, user_id: str) -> None:
        await self.maintenance.delete_user_data(user_id)

    async def cleanup_expired_sessions(self) -> int:
        return await self.maintenance.cleanup_expired_sessions()

    async def cleanup_expired_tokens(self) -> int:
        return await self.maintenance.cleanup_expired_tokens()

    async def flush_all(self) -> None:
        await self.maintenance.flush_all()

    async def ping(self) -> str:
        return await self.health.ping()

    async def health_check(self) -> HealthReport:
        return await self.health.health_check()

    async def get_stats(self) -> dict[str, Any]:
        """Backend key count and memory plus hit/miss counters per namespace.

        Backend figures are None when the backend is unavailable.
        """
        backend: dict[str, Any] = {"key_count": None, "memory_usage": None}
        try:
            backend = await self._store.stats()
        except BackendUnavailableError as e:
            self._logger.warning(
                "Cache stats degraded",
                operation="get_stats",
                error_code=e.code.value,
            )
        return {
            **backend,
            "connection_state": self._store.state.value,
            "namespaces": self.metrics.get_all_stats(),
        }
