"""Redis store adapter.

Thin async wrapper over redis-py that every cache component goes through.
It owns the process-wide key prefix, validates keys, manages the connection
lifecycle and maps redis-py exceptions to the cache error hierarchy.

Architecture:
- Components pass logical keys ("session:abc"); the adapter prepends the prefix
- Write paths raise ValidationError for malformed keys/TTLs
- Read and delete paths return an empty result for malformed keys
- Backend failures raise BackendUnavailableError / BackendTimeoutError
- Lua scripts are loaded once (SCRIPT LOAD) and executed with EVALSHA
- keys()/delete_by_pattern() use incremental SCAN, never KEYS

Connection lifecycle:
    The client is created lazily on first use. connect() pings with
    exponential backoff; a connection-level failure on any command marks the
    adapter DISCONNECTED so the next call reconnects.
    After connect() gives up, commands fail fast for backoff_max seconds
    instead of starting another backoff cycle, and callers that were waiting
    on that attempt share its failure.
"""

import builtins
import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from functools import lru_cache, partial
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError, to_json
from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import NoScriptError, RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from taskcache.core.constants import (
    DELETE_BATCH_SIZE,
    MAX_KEY_LENGTH,
    SCAN_BATCH_SIZE_DEFAULT,
)
from taskcache.core.enums import ConnectionState, ErrorCode
from taskcache.core.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    ValidationError,
)
from taskcache.core.result import Failure, Success
from taskcache.core.validation import require, validate_key, validate_pattern, validate_ttl
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.enums import InfrastructureErrorCode


@lru_cache(maxsize=128)
def _type_adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


class RedisAdapter:
    """Async Redis adapter with prefixing, validation and error mapping.

    Note: Does NOT inherit from CacheStoreProtocol (uses structural typing).

    Args:
        logger: Structured logger.
        redis_url: Connection URL used when no client is injected.
        key_prefix: Prefix prepended to every logical key.
        redis_client: Pre-built client (tests inject fakeredis here).
        max_connections: Pool size for the owned client.
        socket_timeout: Per-command timeout in seconds.
        connect_timeout: Socket connect timeout in seconds.
        connect_retries: Extra connection attempts after the first.
        backoff_base: First reconnect delay in seconds.
        backoff_max: Upper bound for one reconnect delay.
    """

    def __init__(
        self,
        *,
        logger: LoggerProtocol,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "",
        redis_client: Redis | None = None,
        max_connections: int = 50,
        socket_timeout: float = 5.0,
        connect_timeout: float = 10.0,
        connect_retries: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 5.0,
    ) -> None:
        self._logger = logger
        self._redis_url = redis_url
        self._prefix = key_prefix
        self._client = redis_client
        self._owns_client = redis_client is None
        self._max_connections = max_connections
        self._socket_timeout = socket_timeout
        self._connect_timeout = connect_timeout
        self._connect_retries = connect_retries
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max

        self._state = ConnectionState.DISCONNECTED
        self._has_connected = False
        self._connect_lock = asyncio.Lock()
        self._script_lock = asyncio.Lock()
        self._script_shas: dict[str, str] = {}
        self._connect_failure: BackendUnavailableError | None = None
        self._connect_failed_at = 0.0

    # ---------------------------------------------------------------------
    # Connection lifecycle
    # ---------------------------------------------------------------------
    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def key_prefix(self) -> str:
        """Process-wide key prefix."""
        return self._prefix

    async def connect(self) -> None:
        """Connect (or reconnect) with exponential backoff.

        Raises:
            BackendUnavailableError: If every attempt fails, or if an attempt
                that finished while this call waited for the lock failed.
        """
        requested_at = time.monotonic()
        async with self._connect_lock:
            if self._state is ConnectionState.CONNECTED:
                return
            if (
                self._connect_failure is not None
                and self._connect_failed_at >= requested_at
            ):
                raise self._recent_connect_failure("connect")
            self._state = ConnectionState.CONNECTING
            if self._client is None:
                self._client = self._build_client()

            attempts = self._connect_retries + 1
            for attempt in range(1, attempts + 1):
                try:
                    await self._client.ping()
                except RedisError as e:
                    if attempt == attempts:
                        self._state = ConnectionState.DISCONNECTED
                        self._logger.critical(
                            "Cache backend unreachable",
                            error=e,
                            operation="connect",
                            attempts=attempts,
                        )
                        error = self._map_error(e, "connect")
                        self._connect_failure = error
                        self._connect_failed_at = time.monotonic()
                        raise error from e
                    delay = min(
                        self._backoff_base * 2 ** (attempt - 1), self._backoff_max
                    )
                    self._logger.warning(
                        "Cache connection attempt failed",
                        operation="connect",
                        attempt=attempt,
                        retry_in_seconds=delay,
                    )
                    await asyncio.sleep(delay)
                else:
                    self._state = ConnectionState.CONNECTED
                    self._connect_failure = None
                    if self._has_connected:
                        self._logger.info("Cache reconnected", attempts=attempt)
                    else:
                        self._logger.info("Cache connected", attempts=attempt)
                    self._has_connected = True
                    return

    async def disconnect(self) -> None:
        """Close the owned client and mark the adapter disconnected."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._script_shas.clear()
        if self._state is not ConnectionState.DISCONNECTED:
            self._logger.info("Cache disconnected")
        self._state = ConnectionState.DISCONNECTED
        self._connect_failure = None

    def _in_connect_cooldown(self) -> bool:
        return (
            self._connect_failure is not None
            and time.monotonic() - self._connect_failed_at < self._backoff_max
        )

    def _recent_connect_failure(self, operation: str) -> BackendUnavailableError:
        """Fresh error for a caller answered by the last failed connect()."""
        assert self._connect_failure is not None
        return BackendUnavailableError(
            f"Cache {operation} failed, backend unreachable",
            operation=operation,
            infrastructure_code=self._connect_failure.infrastructure_code,
            details=dict(self._connect_failure.details),
        )

    def _build_client(self) -> Redis:
        pool = ConnectionPool.from_url(
            self._redis_url,
            max_connections=self._max_connections,
            decode_responses=True,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._connect_timeout,
            socket_keepalive=True,
            # Reconnects are handled by connect(); commands are never retried
            retry=Retry(NoBackoff(), 0),
        )
        return Redis(connection_pool=pool)

    async def _run[T](
        self,
        operation: str,
        command: Callable[[Redis], Awaitable[T]],
        *,
        infrastructure_code: InfrastructureErrorCode = InfrastructureErrorCode.CACHE_GET_ERROR,
    ) -> T:
        """Execute one backend command with connection handling and error mapping."""
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            if self._in_connect_cooldown():
                raise self._recent_connect_failure(operation)
            await self.connect()
        assert self._client is not None
        try:
            return await command(self._client)
        except (RedisConnectionError, RedisTimeoutError) as e:
            self._state = ConnectionState.DISCONNECTED
            raise self._map_error(e, operation) from e
        except RedisError as e:
            raise self._map_error(e, operation, infrastructure_code) from e

    def _map_error(
        self,
        error: RedisError,
        operation: str,
        infrastructure_code: InfrastructureErrorCode = (
            InfrastructureErrorCode.CACHE_CONNECTION_ERROR
        ),
    ) -> BackendUnavailableError:
        if isinstance(error, RedisTimeoutError):
            return BackendTimeoutError(
                f"Cache {operation} timed out",
                operation=operation,
                details={"error": str(error)},
            )
        if isinstance(error, RedisConnectionError):
            infrastructure_code = InfrastructureErrorCode.CACHE_CONNECTION_ERROR
        return BackendUnavailableError(
            f"Cache {operation} failed",
            operation=operation,
            infrastructure_code=infrastructure_code,
            details={"error": str(error)},
        )

    # ---------------------------------------------------------------------
    # Key handling
    # ---------------------------------------------------------------------
    def _check_key(self, key: Any) -> str | None:
        """Return the qualified key, or None if the key is malformed."""
        match validate_key(key, max_length=MAX_KEY_LENGTH - len(self._prefix)):
            case Success(value=valid):
                return f"{self._prefix}{valid}"
            case Failure():
                self._logger.debug("Rejected malformed cache key")
                return None
        return None

    def _require_key(self, key: Any) -> str:
        """Return the qualified key, raising ValidationError if malformed."""
        valid = require(validate_key(key, max_length=MAX_KEY_LENGTH - len(self._prefix)))
        return f"{self._prefix}{valid}"

    def _strip(self, qualified: str) -> str:
        return qualified[len(self._prefix) :] if self._prefix else qualified

    # ---------------------------------------------------------------------
    # String values
    # ---------------------------------------------------------------------
    async def get(self, key: str) -> str | None:
        """Get a raw string value.

        Args:
            key: Logical cache key.

        Returns:
            Stored value, or None if absent or the key is malformed.
        """
        qualified = self._check_key(key)
        if qualified is None:
            return None
        return await self._run("get", lambda r: r.get(qualified))

    async def mget(self, *keys: str) -> list[str | None]:
        """Get several raw values in one round trip.

        Malformed keys yield None in their position.
        """
        qualified = [self._check_key(key) for key in keys]
        valid = [q for q in qualified if q is not None]
        if not valid:
            return [None] * len(keys)
        values = iter(await self._run("mget", lambda r: r.mget(valid)))
        return [next(values) if q is not None else None for q in qualified]

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl: int | None = None,
        nx: bool = False,
    ) -> bool:
        """Set a raw string value.

        Args:
            key: Logical cache key.
            value: String to store.
            ttl: Lifetime in seconds (None = permanent until deleted).
            nx: Only create the key if it does not exist yet.

        Returns:
            True if written, False if an nx write found the key present.

        Raises:
            ValidationError: Malformed key or TTL.
            BackendUnavailableError: Backend failure.
        """
        qualified = self._require_key(key)
        if ttl is not None:
            require(validate_ttl(ttl))
        result = await self._run(
            "set",
            lambda r: r.set(qualified, value, ex=ttl, nx=nx),
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """Delete keys; malformed keys are skipped.

        Returns:
            Number of keys that existed and were removed.
        """
        qualified = [q for q in (self._check_key(key) for key in keys) if q is not None]
        if not qualified:
            return 0
        return await self._run(
            "delete",
            lambda r: r.delete(*qualified),
            infrastructure_code=InfrastructureErrorCode.CACHE_DELETE_ERROR,
        )

    async def exists(self, key: str) -> bool:
        """Check whether a key exists."""
        qualified = self._check_key(key)
        if qualified is None:
            return False
        return bool(await self._run("exists", lambda r: r.exists(qualified)))

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a key's lifetime.

        Returns:
            True if the timeout was set, False if the key does not exist.
        """
        qualified = self._require_key(key)
        require(validate_ttl(seconds, field="seconds"))
        result = await self._run(
            "expire",
            lambda r: r.expire(qualified, seconds),
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )
        return bool(result)

    async def ttl(self, key: str) -> int:
        """Remaining lifetime in seconds (-2 absent, -1 no expiry)."""
        qualified = self._check_key(key)
        if qualified is None:
            return -2
        return int(await self._run("ttl", lambda r: r.ttl(qualified)))

    async def ttl_many(self, keys: list[str]) -> list[int]:
        """TTL for a batch of logical keys in one pipeline round trip."""
        qualified = [self._require_key(key) for key in keys]
        if not qualified:
            return []

        async def _pipeline(r: Redis) -> list[Any]:
            async with r.pipeline(transaction=False) as pipe:
                for q in qualified:
                    pipe.ttl(q)
                return await pipe.execute()

        return [int(value) for value in await self._run("ttl", _pipeline)]

    async def increment(self, key: str, amount: int = 1) -> int:
        """Atomically increment an integer value."""
        qualified = self._require_key(key)
        return await self._run(
            "increment",
            lambda r: r.incrby(qualified, amount),
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )

    # ---------------------------------------------------------------------
    # JSON values
    # ---------------------------------------------------------------------
    async def get_json(self, key: str, type_: Any = None) -> Any:
        """Get and decode a JSON value.

        Args:
            key: Logical cache key.
            type_: Optional type to validate into (dataclass, pydantic model,
                TypedDict, ...). Plain JSON types when omitted.

        Returns:
            Decoded value, or None if absent, malformed key or undecodable.
        """
        raw = await self.get(key)
        if raw is None:
            return None
        return self._decode(key, raw, type_)

    async def mget_json(self, *keys: str, type_: Any = None) -> list[Any]:
        """Get and decode several JSON values (None for missing entries)."""
        raws = await self.mget(*keys)
        return [
            None if raw is None else self._decode(key, raw, type_)
            for key, raw in zip(keys, raws, strict=True)
        ]

    def _decode(self, key: str, raw: str, type_: Any) -> Any:
        try:
            return _type_adapter(Any if type_ is None else type_).validate_json(raw)
        except ValueError as e:
            # Corrupt or schema-incompatible entries read as misses
            self._logger.warning(
                "Cache entry could not be decoded",
                operation="get_json",
                key=key,
                error_type=type(e).__name__,
            )
            return None

    async def set_json(
        self,
        key: str,
        value: Any,
        *,
        ttl: int | None = None,
        nx: bool = False,
    ) -> bool:
        """Encode a value as JSON and store it.

        Raises:
            ValidationError: Malformed key/TTL or value not serializable.
            BackendUnavailableError: Backend failure.
        """
        try:
            encoded = to_json(value).decode("utf-8")
        except PydanticSerializationError as e:
            raise ValidationError(
                "Value is not JSON serializable",
                code=ErrorCode.SERIALIZATION_FAILED,
                field="value",
                details={"type": type(value).__name__},
            ) from e
        return await self.set(key, encoded, ttl=ttl, nx=nx)

    # ---------------------------------------------------------------------
    # Sets
    # ---------------------------------------------------------------------
    async def sadd(self, key: str, *members: str) -> int:
        """Add members to a set."""
        qualified = self._require_key(key)
        if not members:
            return 0
        return await self._run(
            "sadd",
            lambda r: r.sadd(qualified, *members),
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )

    async def srem(self, key: str, *members: str) -> int:
        """Remove members from a set."""
        qualified = self._check_key(key)
        if qualified is None or not members:
            return 0
        return await self._run(
            "srem",
            lambda r: r.srem(qualified, *members),
            infrastructure_code=InfrastructureErrorCode.CACHE_DELETE_ERROR,
        )

    async def smembers(self, key: str) -> builtins.set[str]:
        """All members of a set (empty if absent)."""
        qualified = self._check_key(key)
        if qualified is None:
            return set()
        return set(await self._run("smembers", lambda r: r.smembers(qualified)))

    async def sismember(self, key: str, member: str) -> bool:
        """Check set membership."""
        qualified = self._check_key(key)
        if qualified is None:
            return False
        return bool(await self._run("sismember", lambda r: r.sismember(qualified, member)))

    async def replace_set(self, key: str, members: Iterable[str], *, ttl: int) -> None:
        """Atomically replace a set's members and lifetime (MULTI/EXEC).

        An empty member list deletes the set.
        """
        qualified = self._require_key(key)
        require(validate_ttl(ttl))
        values = list(dict.fromkeys(members))

        async def _transaction(r: Redis) -> None:
            async with r.pipeline(transaction=True) as pipe:
                pipe.delete(qualified)
                if values:
                    pipe.sadd(qualified, *values)
                    pipe.expire(qualified, ttl)
                await pipe.execute()

        await self._run(
            "replace_set",
            _transaction,
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )

    # ---------------------------------------------------------------------
    # Hashes
    # ---------------------------------------------------------------------
    async def hset(
        self,
        key: str,
        field: str | None = None,
        value: str | None = None,
        *,
        mapping: dict[str, str] | None = None,
    ) -> int:
        """Set one hash field, or several via mapping.

        Returns:
            Number of fields newly created.
        """
        qualified = self._require_key(key)
        if field is None and not mapping:
            raise ValidationError("hset requires a field or a mapping", field="field")
        return await self._run(
            "hset",
            lambda r: r.hset(qualified, field, value, mapping=mapping),
            infrastructure_code=InfrastructureErrorCode.CACHE_SET_ERROR,
        )

    async def hget(self, key: str, field: str) -> str | None:
        """Get one hash field."""
        qualified = self._check_key(key)
        if qualified is None:
            return None
        return await self._run("hget", lambda r: r.hget(qualified, field))

    async def hdel(self, key: str, *fields: str) -> int:
        """Delete hash fields."""
        qualified = self._check_key(key)
        if qualified is None or not fields:
            return 0
        return await self._run(
            "hdel",
            lambda r: r.hdel(qualified, *fields),
            infrastructure_code=InfrastructureErrorCode.CACHE_DELETE_ERROR,
        )

    async def hgetall(self, key: str) -> dict[str, str]:
        """All fields of a hash (empty if absent)."""
        qualified = self._check_key(key)
        if qualified is None:
            return {}
        return dict(await self._run("hgetall", lambda r: r.hgetall(qualified)))

    # ---------------------------------------------------------------------
    # Scanning
    # ---------------------------------------------------------------------
    async def scan_batches(
        self,
        pattern: str,
        *,
        batch_size: int = SCAN_BATCH_SIZE_DEFAULT,
    ) -> AsyncIterator[list[str]]:
        """Iterate logical keys matching pattern, one SCAN page at a time.

        O(keyspace): administrative and maintenance paths only.
        """
        if isinstance(validate_pattern(pattern), Failure):
            return
        match_pattern = f"{self._prefix}{pattern}"
        cursor = 0
        while True:
            cursor, page = await self._run(
                "scan",
                partial(_scan_page, cursor=cursor, match=match_pattern, count=batch_size),
                infrastructure_code=InfrastructureErrorCode.CACHE_SCAN_ERROR,
            )
            if page:
                yield [self._strip(key) for key in page]
            if cursor == 0:
                break

    async def keys(self, pattern: str = "*") -> list[str]:
        """Logical keys matching a glob pattern (SCAN based)."""
        found: list[str] = []
        async for batch in self.scan_batches(pattern):
            found.extend(batch)
        # SCAN may return a key more than once
        return list(dict.fromkeys(found))

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching pattern in bounded batches.

        Returns:
            Number of keys removed.
        """
        deleted = 0
        async for batch in self.scan_batches(pattern):
            for start in range(0, len(batch), DELETE_BATCH_SIZE):
                deleted += await self.delete(*batch[start : start + DELETE_BATCH_SIZE])
        return deleted

    # ---------------------------------------------------------------------
    # Scripts
    # ---------------------------------------------------------------------
    async def run_script(self, name: str, keys: list[str], args: list[Any]) -> Any:
        """Execute a bundled Lua script atomically via EVALSHA.

        Args:
            name: Script file name under lua_scripts/.
            keys: Logical keys (qualified here).
            args: Script arguments.

        Returns:
            Raw script reply.
        """
        qualified = [self._require_key(key) for key in keys]
        sha = await self._ensure_script(name)

        async def _evalsha(r: Redis) -> Any:
            try:
                return await r.evalsha(sha, len(qualified), *qualified, *args)
            except NoScriptError:
                # Script cache flushed or server restarted
                source = await _read_lua_script(name)
                new_sha = await r.script_load(source)
                self._script_shas[name] = new_sha
                return await r.evalsha(new_sha, len(qualified), *qualified, *args)

        return await self._run(
            "eval",
            _evalsha,
            infrastructure_code=InfrastructureErrorCode.CACHE_SCRIPT_ERROR,
        )

    async def _ensure_script(self, name: str) -> str:
        if name in self._script_shas:
            return self._script_shas[name]
        async with self._script_lock:
            if name in self._script_shas:
                return self._script_shas[name]
            source = await _read_lua_script(name)
            sha: str = await self._run(
                "script_load",
                lambda r: r.script_load(source),
                infrastructure_code=InfrastructureErrorCode.CACHE_SCRIPT_ERROR,
            )
            self._script_shas[name] = sha
            self._logger.debug("Loaded Lua script", script=name, sha=sha)
            return sha

    # ---------------------------------------------------------------------
    # Diagnostics
    # ---------------------------------------------------------------------
    async def ping(self) -> str:
        """Round-trip check.

        Returns:
            "PONG".
        """
        await self._run(
            "ping",
            lambda r: r.ping(),
            infrastructure_code=InfrastructureErrorCode.CACHE_CONNECTION_ERROR,
        )
        return "PONG"

    async def stats(self) -> dict[str, Any]:
        """Key count and memory usage of the backend database.

        memory_usage is None when the backend does not report it.
        """
        key_count = await self._run("dbsize", lambda r: r.dbsize())
        memory_usage: str | None = None
        try:
            info = await self._run("info", lambda r: r.info("memory"))
            memory_usage = info.get("used_memory_human")
        except BackendUnavailableError:
            # INFO unsupported (ResponseError) keeps the connection usable
            if self._state is not ConnectionState.CONNECTED:
                raise
            self._logger.debug("Backend memory info unavailable", operation="info")
        return {"key_count": int(key_count), "memory_usage": memory_usage}


async def _scan_page(r: Redis, *, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
    return await r.scan(cursor=cursor, match=match, count=count)


def _read_lua_script_sync(path: Path) -> str:
    """Synchronous helper to read Lua script (called via run_in_executor)."""
    return path.read_text(encoding="utf-8")


async def _read_lua_script(name: str) -> str:
    """Read a Lua script bundled next to this module.

    Args:
        name: File name under lua_scripts/.

    Returns:
        Script contents as string.
    """
    full_path = Path(__file__).parent / "lua_scripts" / name
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(_read_lua_script_sync, full_path))
