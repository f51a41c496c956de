"""Read-through user profile cache.

Key Pattern:
    - user:{user_id}:profile -> JSON profile snapshot (default 30 min)

The database stays the source of truth: every operation degrades to a miss
or a no-op when the backend is unavailable, and callers invalidate with
delete_user_profile() after profile writes.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from taskcache.core.constants import PROFILE_TTL_DEFAULT
from taskcache.core.errors import BackendUnavailableError
from taskcache.core.result import Failure
from taskcache.core.validation import require, validate_ttl, validate_user_id
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics

type ProfileLoader = Callable[[str], Awaitable[Any] | Any]


class ProfileCache:
    """User profile snapshots.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        metrics: Shared hit/miss counters.
        default_ttl: Snapshot lifetime used when no TTL is passed.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        metrics: CacheMetrics,
        default_ttl: int = PROFILE_TTL_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._metrics = metrics
        self._default_ttl = default_ttl

    async def set_user_profile(self, user_id: str, profile: Any, ttl: int | None = None) -> None:
        """Cache a profile snapshot; a backend failure is logged and ignored.

        Raises:
            ValidationError: Malformed user id, TTL or unserializable profile.
        """
        uid = require(validate_user_id(user_id))
        profile_ttl = require(validate_ttl(self._default_ttl if ttl is None else ttl))
        try:
            await self._store.set_json(CacheKeys.user_profile(uid), profile, ttl=profile_ttl)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.PROFILE)
            self._logger.warning(
                "Profile cache write skipped",
                operation="set_user_profile",
                user_id=uid,
                error_code=e.code.value,
            )

    async def get_user_profile(self, user_id: str, type_: Any = None) -> Any:
        """Cached profile, or None on miss, malformed id or backend failure."""
        if isinstance(uid_result := validate_user_id(user_id), Failure):
            return None
        uid = uid_result.value
        try:
            profile = await self._store.get_json(CacheKeys.user_profile(uid), type_)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.PROFILE)
            self._logger.warning(
                "Profile cache read degraded",
                operation="get_user_profile",
                user_id=uid,
                error_code=e.code.value,
            )
            return None
        self._metrics.record_lookup(CacheKeys.PROFILE, profile)
        return profile

    async def get_or_load_user_profile(
        self,
        user_id: str,
        loader: ProfileLoader,
        ttl: int | None = None,
        type_: Any = None,
    ) -> Any:
        """Return the cached profile, loading and caching it on a miss.

        Args:
            user_id: Profile owner.
            loader: Sync or async callable fetching the profile from the
                source of truth; None means "no such user" and is not cached.
            ttl: Snapshot lifetime for a freshly loaded profile.
            type_: Optional type to validate the cached value into.

        Returns:
            Cached or loaded profile, or None.

        Raises:
            ValidationError: Malformed user id.
            Exception: Whatever the loader raises.
        """
        uid = require(validate_user_id(user_id))
        cached = await self.get_user_profile(uid, type_)
        if cached is not None:
            return cached

        loaded = loader(uid)
        if inspect.isawaitable(loaded):
            loaded = await loaded
        if loaded is not None:
            await self.set_user_profile(uid, loaded, ttl)
        return loaded

    async def delete_user_profile(self, user_id: str) -> bool:
        """Invalidate a profile snapshot.

        Returns:
            True if a snapshot existed; False otherwise or on failure.
        """
        if isinstance(uid_result := validate_user_id(user_id), Failure):
            return False
        uid = uid_result.value
        try:
            deleted = await self._store.delete(CacheKeys.user_profile(uid))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.PROFILE)
            self._logger.warning(
                "Profile cache delete degraded",
                operation="delete_user_profile",
                user_id=uid,
                error_code=e.code.value,
            )
            return False
        return deleted > 0
