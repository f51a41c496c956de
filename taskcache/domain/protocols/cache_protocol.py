"""Store protocol - what cache components need from the key-value backend.

Session store, token vault, rate limiter, login tracker, profile cache,
maintenance worker and health monitor depend on this protocol rather than on
RedisAdapter, so tests can substitute any structurally compatible object.

Contract:
- Keys are logical (unprefixed); the implementation owns the prefix
- Write methods raise ValidationError for malformed keys or TTLs
- Read/delete methods return an empty result for malformed keys
- Backend failures raise BackendUnavailableError (or BackendTimeoutError)
"""

import builtins
from collections.abc import AsyncIterator, Iterable
from typing import Any, Protocol

from taskcache.core.enums import ConnectionState


class CacheStoreProtocol(Protocol):
    """Async key-value store used by every cache component."""

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def get(self, key: str) -> str | None: ...

    async def mget(self, *keys: str) -> list[str | None]: ...

    async def set(
        self, key: str, value: str, *, ttl: int | None = None, nx: bool = False
    ) -> bool:
        """Store a string; returns False when an nx write found the key present."""
        ...

    async def delete(self, *keys: str) -> int: ...

    async def exists(self, key: str) -> bool: ...

    async def expire(self, key: str, seconds: int) -> bool: ...

    async def ttl(self, key: str) -> int:
        """Remaining lifetime in seconds (-2 absent, -1 no expiry)."""
        ...

    async def ttl_many(self, keys: list[str]) -> list[int]: ...

    async def increment(self, key: str, amount: int = 1) -> int: ...

    async def get_json(self, key: str, type_: Any = None) -> Any:
        """Decoded JSON value, validated into type_ when given."""
        ...

    async def mget_json(self, *keys: str, type_: Any = None) -> list[Any]: ...

    async def set_json(
        self, key: str, value: Any, *, ttl: int | None = None, nx: bool = False
    ) -> bool: ...

    async def sadd(self, key: str, *members: str) -> int: ...

    async def srem(self, key: str, *members: str) -> int: ...

    async def smembers(self, key: str) -> builtins.set[str]: ...

    async def sismember(self, key: str, member: str) -> bool: ...

    async def replace_set(self, key: str, members: Iterable[str], *, ttl: int) -> None:
        """Atomically replace a set's members and lifetime."""
        ...

    async def hset(
        self,
        key: str,
        field: str | None = None,
        value: str | None = None,
        *,
        mapping: dict[str, str] | None = None,
    ) -> int: ...

    async def hget(self, key: str, field: str) -> str | None: ...

    async def hdel(self, key: str, *fields: str) -> int: ...

    async def hgetall(self, key: str) -> dict[str, str]: ...

    def scan_batches(
        self, pattern: str, *, batch_size: int = ...
    ) -> AsyncIterator[list[str]]:
        """Logical keys matching pattern, one SCAN page at a time."""
        ...

    async def keys(self, pattern: str = "*") -> list[str]: ...

    async def delete_by_pattern(self, pattern: str) -> int: ...

    async def run_script(self, name: str, keys: list[str], args: list[Any]) -> Any:
        """Execute a bundled Lua script atomically."""
        ...

    async def ping(self) -> str: ...

    async def stats(self) -> dict[str, Any]: ...
