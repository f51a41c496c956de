"""Fixed-window rate limiter with Lua script atomicity.

Each identifier gets one counter key (ratelimit:{identifier}). The
increment, TTL read and first-hit EXPIRE run as a single Lua script inside
Redis, so N concurrent first hits produce count N and a window that starts
exactly once.

Failure policy:
    - increment_rate_limit raises BackendUnavailableError
    - check_rate_limit fails open (allowed=True) and logs a warning
    - get_rate_limit / reset_rate_limit degrade to None / False

Usage:
    limiter = RateLimiter(store=adapter, logger=logger, metrics=metrics)

    decision = await limiter.check_rate_limit("general:10.0.0.1", 900, 100)
    if not decision.allowed:
        # respond 429 with decision.retry_after_seconds
        ...
"""

import math
import time
from dataclasses import dataclass

from taskcache.core.constants import RATE_LIMIT_WINDOW_DEFAULT
from taskcache.core.errors import BackendUnavailableError, ValidationError
from taskcache.core.result import Failure
from taskcache.core.validation import (
    require,
    validate_rate_limit_identifier,
    validate_window,
)
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics

FIXED_WINDOW_SCRIPT = "fixed_window.lua"


def _now_ms() -> int:
    return int(time.time() * 1000)


def reset_at_ms(now_ms: int, ttl_seconds: int, window_seconds: int) -> int:
    """Window end in epoch milliseconds.

    Falls back to a full window when the backend reports no positive TTL.
    """
    return now_ms + (ttl_seconds if ttl_seconds > 0 else window_seconds) * 1000


@dataclass(frozen=True, slots=True, kw_only=True)
class RateLimitResult:
    """Counter state after an increment.

    Attributes:
        count: Hits recorded in the current window.
        reset_at: Window end, epoch milliseconds.
    """

    count: int
    reset_at: int


@dataclass(frozen=True, slots=True, kw_only=True)
class RateLimitDecision:
    """Allow/deny decision for one request.

    Attributes:
        allowed: False once count exceeds limit.
        count: Hits recorded in the current window.
        limit: Maximum hits allowed per window.
        remaining: Hits left before denial (never negative).
        reset_at: Window end, epoch milliseconds.
    """

    allowed: bool
    count: int
    limit: int
    remaining: int
    reset_at: int

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds until the window resets (0 when allowed)."""
        if self.allowed:
            return 0
        return math.ceil(max(0, self.reset_at - _now_ms()) / 1000)


async def increment_window_counter(
    store: CacheStoreProtocol, key: str, window_seconds: int
) -> RateLimitResult:
    """Run the fixed-window script against key.

    Shared by the rate limiter and the login-attempt tracker.
    """
    count, ttl = await store.run_script(FIXED_WINDOW_SCRIPT, [key], [window_seconds])
    return RateLimitResult(
        count=int(count),
        reset_at=reset_at_ms(_now_ms(), int(ttl), window_seconds),
    )


class RateLimiter:
    """Per-identifier fixed-window counters.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        metrics: Shared counters.
        default_window: Window used when callers pass none.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        metrics: CacheMetrics,
        default_window: int = RATE_LIMIT_WINDOW_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._metrics = metrics
        self._default_window = default_window

    async def increment_rate_limit(
        self, identifier: str, window_seconds: int | None = None
    ) -> RateLimitResult:
        """Count one hit for identifier in its current window.

        Args:
            identifier: Caller-chosen bucket name (IP, "route:ip", ...).
            window_seconds: Window length, 1..86400 (default configured).

        Returns:
            RateLimitResult with count and reset_at.

        Raises:
            ValidationError: Malformed identifier or window.
            BackendUnavailableError: Backend failure.
        """
        ident = require(validate_rate_limit_identifier(identifier))
        window = require(
            validate_window(self._default_window if window_seconds is None else window_seconds)
        )
        try:
            return await increment_window_counter(
                self._store, CacheKeys.rate_limit(ident), window
            )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.RATE_LIMIT)
            self._logger.error(
                "Rate limit increment failed",
                error=e,
                operation="increment_rate_limit",
                identifier=ident,
            )
            raise

    async def check_rate_limit(
        self,
        identifier: str,
        window_seconds: int,
        max_requests: int,
    ) -> RateLimitDecision:
        """Count a hit and decide whether the request is allowed.

        Fails open: a backend failure yields allowed=True.

        Raises:
            ValidationError: Malformed identifier, window or max_requests.
        """
        if isinstance(max_requests, bool) or not isinstance(max_requests, int) or max_requests < 1:
            raise ValidationError("max_requests must be a positive integer", field="max_requests")
        window = require(validate_window(window_seconds))
        try:
            result = await self.increment_rate_limit(identifier, window)
        except BackendUnavailableError as e:
            self._logger.warning(
                "Rate limit check failing open",
                operation="check_rate_limit",
                identifier=identifier,
                error_code=e.code.value,
            )
            return RateLimitDecision(
                allowed=True,
                count=0,
                limit=max_requests,
                remaining=max_requests,
                reset_at=_now_ms() + window * 1000,
            )

        allowed = result.count <= max_requests
        if not allowed:
            self._logger.info(
                "Rate limit exceeded",
                identifier=identifier,
                count=result.count,
                limit=max_requests,
            )
        return RateLimitDecision(
            allowed=allowed,
            count=result.count,
            limit=max_requests,
            remaining=max(0, max_requests - result.count),
            reset_at=result.reset_at,
        )

    async def get_rate_limit(self, identifier: str) -> RateLimitResult | None:
        """Current counter without incrementing.

        Returns:
            RateLimitResult, or None when no window is open, the identifier
            is malformed or the backend is unavailable.
        """
        if isinstance(ident_result := validate_rate_limit_identifier(identifier), Failure):
            return None
        ident = ident_result.value
        key = CacheKeys.rate_limit(ident)

        try:
            raw = await self._store.get(key)
            if raw is None:
                self._metrics.record_miss(CacheKeys.RATE_LIMIT)
                return None
            ttl = await self._store.ttl(key)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.RATE_LIMIT)
            self._logger.warning(
                "Rate limit read degraded",
                operation="get_rate_limit",
                identifier=ident,
                error_code=e.code.value,
            )
            return None

        self._metrics.record_hit(CacheKeys.RATE_LIMIT)
        now = _now_ms()
        return RateLimitResult(count=int(raw), reset_at=now + max(ttl, 0) * 1000)

    async def reset_rate_limit(self, identifier: str) -> bool:
        """Delete an identifier's counter.

        Returns:
            True if a counter existed; False otherwise or on failure.
        """
        if isinstance(ident_result := validate_rate_limit_identifier(identifier), Failure):
            return False
        ident = ident_result.value

        try:
            deleted = await self._store.delete(CacheKeys.rate_limit(ident))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.RATE_LIMIT)
            self._logger.warning(
                "Rate limit reset degraded",
                operation="reset_rate_limit",
                identifier=ident,
                error_code=e.code.value,
            )
            return False
        return deleted > 0
