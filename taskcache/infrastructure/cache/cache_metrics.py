"""Cache metrics tracking for observability.

Lightweight in-memory hit/miss/error counters per cache namespace
(session, refresh, profile, ratelimit, login_attempts). Surfaced through
CacheService.get_stats().

Usage:
    from taskcache.infrastructure.cache.cache_metrics import CacheMetrics

    metrics = CacheMetrics()
    metrics.record_hit("session")
    metrics.record_miss("profile")

    stats = metrics.get_stats("session")
    print(f"Hit rate: {stats['hit_rate']:.2%}")
"""

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Any


@dataclass
class CacheStats:
    """Counters for a single namespace.

    Attributes:
        hits: Reads that found a value.
        misses: Reads that found nothing.
        errors: Operations that hit a backend failure.
    """

    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def total_requests(self) -> int:
        """Reads counted (hits + misses)."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate between 0.0 and 1.0."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to a JSON-friendly dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 4),
        }


class CacheMetrics:
    """Thread-safe per-namespace counters.

    One instance is shared by every component of a CacheService.
    """

    def __init__(self) -> None:
        self._stats: dict[str, CacheStats] = defaultdict(CacheStats)
        self._lock = Lock()

    def record_hit(self, namespace: str) -> None:
        """Record a read that found a value."""
        with self._lock:
            self._stats[namespace].hits += 1

    def record_miss(self, namespace: str) -> None:
        """Record a read that found nothing."""
        with self._lock:
            self._stats[namespace].misses += 1

    def record_error(self, namespace: str) -> None:
        """Record a backend failure."""
        with self._lock:
            self._stats[namespace].errors += 1

    def record_lookup(self, namespace: str, value: Any) -> None:
        """Record a hit or a miss depending on whether value is None."""
        if value is None:
            self.record_miss(namespace)
        else:
            self.record_hit(namespace)

    def get_stats(self, namespace: str) -> dict[str, Any]:
        """Statistics for one namespace (zeros if never used)."""
        with self._lock:
            stats = self._stats.get(namespace, CacheStats())
            return stats.to_dict()

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        """Statistics for every namespace seen so far."""
        with self._lock:
            return {
                namespace: stats.to_dict() for namespace, stats in self._stats.items()
            }

    def reset(self, namespace: str | None = None) -> None:
        """Reset one namespace, or everything when namespace is None."""
        with self._lock:
            if namespace is None:
                self._stats.clear()
            else:
                self._stats[namespace] = CacheStats()
