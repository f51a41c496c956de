"""Cache infrastructure package.

Architecture:
- RedisAdapter: prefixing, validation, connection lifecycle, error mapping
- SessionStore / TokenVault: payloads plus per-user indexes
- RateLimiter / LoginAttemptTracker: atomic fixed-window counters
- ProfileCache: read-through profile snapshots
- MaintenanceWorker / HealthMonitor: sweeps, bulk deletes, health
- CacheService: facade over all of the above
- Use taskcache.core.container.create_cache_service() to build one
"""

from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics
from taskcache.infrastructure.cache.cache_service import CacheService
from taskcache.infrastructure.cache.health import HealthMonitor, HealthReport, HealthStatus
from taskcache.infrastructure.cache.login_attempts import LoginAttemptTracker
from taskcache.infrastructure.cache.maintenance import CleanupReport, MaintenanceWorker
from taskcache.infrastructure.cache.profile_cache import ProfileCache
from taskcache.infrastructure.cache.rate_limiter import (
    RateLimitDecision,
    RateLimiter,
    RateLimitResult,
)
from taskcache.infrastructure.cache.redis_adapter import RedisAdapter
from taskcache.infrastructure.cache.session_store import SessionStore
from taskcache.infrastructure.cache.token_vault import TokenVault

__all__ = [
    "CacheKeys",
    "CacheMetrics",
    "CacheService",
    "CleanupReport",
    "HealthMonitor",
    "HealthReport",
    "HealthStatus",
    "LoginAttemptTracker",
    "MaintenanceWorker",
    "ProfileCache",
    "RateLimitDecision",
    "RateLimitResult",
    "RateLimiter",
    "RedisAdapter",
    "SessionStore",
    "TokenVault",
]
