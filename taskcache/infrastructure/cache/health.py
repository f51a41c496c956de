"""Cache health monitor.

Status rules:
    - UNHEALTHY: ping fails
    - DEGRADED: ping succeeds but the smoke test (write, read, delete of a
      disposable key) fails, stats are unavailable, or ping latency exceeds
      the configured threshold
    - HEALTHY: otherwise
"""

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from uuid_extensions import uuid7

from taskcache.core.constants import (
    HEALTH_LATENCY_THRESHOLD_MS_DEFAULT,
    HEALTH_PROBE_TTL_SECONDS,
)
from taskcache.core.errors import BackendUnavailableError
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys


class HealthStatus(str, Enum):
    """Overall cache health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True, slots=True, kw_only=True)
class HealthReport:
    """Result of one health check.

    Attributes:
        status: Overall status.
        latency_ms: Ping round trip (None when ping failed).
        key_count: Keys in the backend database, if available.
        memory_usage: Human-readable memory usage, if reported.
        error: Reason for a non-healthy status.
        checked_at: When the check ran (UTC).
    """

    status: HealthStatus
    latency_ms: float | None = None
    key_count: int | None = None
    memory_usage: str | None = None
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a JSON-friendly dictionary."""
        return {
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "key_count": self.key_count,
            "memory_usage": self.memory_usage,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
        }


class HealthMonitor:
    """Connectivity and round-trip checks.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        latency_threshold_ms: Ping latency above which status is DEGRADED.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        latency_threshold_ms: float = HEALTH_LATENCY_THRESHOLD_MS_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._latency_threshold_ms = latency_threshold_ms

    async def ping(self) -> str:
        """Round-trip check.

        Raises:
            BackendUnavailableError: Backend unreachable.
        """
        return await self._store.ping()

    async def smoke_test(self) -> bool:
        """Write, read back and delete a disposable probe key.

        Returns:
            True if the value read back matches the value written.
        """
        probe_key = CacheKeys.health_probe(str(uuid7()))
        probe_value = str(time.time())
        try:
            await self._store.set(probe_key, probe_value, ttl=HEALTH_PROBE_TTL_SECONDS)
            read_back = await self._store.get(probe_key)
            await self._store.delete(probe_key)
        except BackendUnavailableError as e:
            self._logger.warning(
                "Cache smoke test failed",
                operation="smoke_test",
                error_code=e.code.value,
            )
            return False
        return read_back == probe_value

    async def health_check(self) -> HealthReport:
        """Run ping, smoke test and stats and summarize them."""
        started = time.perf_counter()
        try:
            await self.ping()
        except BackendUnavailableError as e:
            self._logger.warning(
                "Cache health check failed",
                operation="health_check",
                error_code=e.code.value,
            )
            return HealthReport(status=HealthStatus.UNHEALTHY, error=str(e))
        latency_ms = round((time.perf_counter() - started) * 1000, 3)

        problems: list[str] = []
        if not await self.smoke_test():
            problems.append("smoke test failed")
        if latency_ms > self._latency_threshold_ms:
            problems.append(
                f"latency {latency_ms}ms above {self._latency_threshold_ms}ms threshold"
            )

        stats: dict[str, Any] = {}
        try:
            stats = await self._store.stats()
        except BackendUnavailableError as e:
            problems.append(f"stats unavailable ({e.code.value})")

        status = HealthStatus.DEGRADED if problems else HealthStatus.HEALTHY
        if problems:
            self._logger.warning("Cache degraded", problems=problems, latency_ms=latency_ms)
        return HealthReport(
            status=status,
            latency_ms=latency_ms,
            key_count=stats.get("key_count"),
            memory_usage=stats.get("memory_usage"),
            error="; ".join(problems) or None,
        )
