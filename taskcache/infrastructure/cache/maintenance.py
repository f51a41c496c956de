"""Cache maintenance: expiry sweeps, index reconciliation and bulk deletes.

Redis expires keys on its own; the sweeps exist to
- count what expired (operational visibility),
- give keys that somehow lost their TTL the namespace default,
- drop ids from user:*:sessions / user:*:refresh_tokens whose payload is gone.

All scans are chunked (SCAN COUNT + one TTL pipeline per page) and every run
is skipped when the backend cannot be reached.

The periodic runner follows a plain asyncio loop: start() spawns a task that
calls run_once() every interval seconds; stop() cancels it.
"""

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass

from taskcache.core.constants import (
    REFRESH_TOKEN_TTL_DEFAULT,
    SCAN_BATCH_SIZE_DEFAULT,
    SESSION_TTL_DEFAULT,
)
from taskcache.core.enums import ConnectionState
from taskcache.core.errors import BackendUnavailableError, OperationNotAllowedError
from taskcache.core.validation import require, validate_user_id
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys

_DEFAULT_INTERVAL_SECONDS = 3600.0


@dataclass(frozen=True, slots=True, kw_only=True)
class CleanupReport:
    """Outcome of one maintenance run.

    Attributes:
        expired_sessions: Session keys and stale session index entries found.
        expired_tokens: Token keys and stale token index entries found.
        skipped: True when the backend was unreachable and nothing ran.
    """

    expired_sessions: int = 0
    expired_tokens: int = 0
    skipped: bool = False


class MaintenanceWorker:
    """Sweeps, reconciliation and destructive bulk operations.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        batch_size: Keys per SCAN page and TTL pipeline.
        session_ttl: TTL given to session keys found without one.
        refresh_token_ttl: TTL given to token keys found without one.
        allow_flush: False in production; flush_all() is refused then.
        interval_seconds: Delay between periodic runs.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        batch_size: int = SCAN_BATCH_SIZE_DEFAULT,
        session_ttl: int = SESSION_TTL_DEFAULT,
        refresh_token_ttl: int = REFRESH_TOKEN_TTL_DEFAULT,
        allow_flush: bool = True,
        interval_seconds: float = _DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._store = store
        self._logger = logger
        self._batch_size = batch_size
        self._session_ttl = session_ttl
        self._refresh_token_ttl = refresh_token_ttl
        self._allow_flush = allow_flush
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._running = False

    # ---------------------------------------------------------------------
    # Sweeps
    # ---------------------------------------------------------------------
    async def cleanup_expired_sessions(self) -> int:
        """Sweep session keys and reconcile per-user session indexes.

        Returns:
            Expired session keys plus stale index entries removed.
        """
        if not await self._backend_ready("cleanup_expired_sessions"):
            return 0
        found = 0
        try:
            found += await self._sweep(CacheKeys.SESSION_PATTERN, self._session_ttl)
            found += await self._reconcile_indexes(
                CacheKeys.USER_SESSIONS_PATTERN, CacheKeys.session
            )
        except BackendUnavailableError as e:
            self._logger.warning(
                "Session cleanup interrupted",
                operation="cleanup_expired_sessions",
                processed=found,
                error_code=e.code.value,
            )
            return found
        self._logger.info("Session cleanup finished", expired=found)
        return found

    async def cleanup_expired_tokens(self) -> int:
        """Sweep refresh token keys and reconcile per-user token indexes.

        Returns:
            Expired token keys plus stale index entries removed.
        """
        if not await self._backend_ready("cleanup_expired_tokens"):
            return 0
        found = 0
        try:
            found += await self._sweep(
                CacheKeys.REFRESH_TOKEN_PATTERN, self._refresh_token_ttl
            )
            found += await self._reconcile_indexes(
                CacheKeys.USER_REFRESH_TOKENS_PATTERN, CacheKeys.refresh_token
            )
        except BackendUnavailableError as e:
            self._logger.warning(
                "Token cleanup interrupted",
                operation="cleanup_expired_tokens",
                processed=found,
                error_code=e.code.value,
            )
            return found
        self._logger.info("Token cleanup finished", expired=found)
        return found

    async def _sweep(self, pattern: str, default_ttl: int) -> int:
        expired = 0
        async for batch in self._store.scan_batches(pattern, batch_size=self._batch_size):
            ttls = await self._store.ttl_many(batch)
            for key, ttl in zip(batch, ttls, strict=True):
                if ttl == -2:
                    expired += 1
                elif ttl == -1:
                    self._logger.warning(
                        "Cache key without expiry",
                        key=key,
                        assigned_ttl=default_ttl,
                    )
                    await self._store.expire(key, default_ttl)
        return expired

    async def _reconcile_indexes(
        self, pattern: str, member_key: Callable[[str], str]
    ) -> int:
        stale_total = 0
        async for batch in self._store.scan_batches(pattern, batch_size=self._batch_size):
            for index_key in batch:
                members = sorted(await self._store.smembers(index_key))
                if not members:
                    continue
                values = await self._store.mget(*(member_key(m) for m in members))
                stale = [m for m, v in zip(members, values, strict=True) if v is None]
                if stale:
                    await self._store.srem(index_key, *stale)
                    stale_total += len(stale)
        return stale_total

    # ---------------------------------------------------------------------
    # Bulk deletes
    # ---------------------------------------------------------------------
    async def delete_user_data(self, user_id: str) -> None:
        """Remove everything cached for a user (best effort).

        Deletes the user's indexed sessions, indexed refresh tokens and every
        key under user:{user_id}:*. Each step runs even if an earlier one
        failed; failures are logged, not raised.

        Raises:
            ValidationError: Malformed user id.
        """
        uid = require(validate_user_id(user_id))
        removed = 0

        for index_key, member_key, operation in (
            (CacheKeys.user_sessions(uid), CacheKeys.session, "delete_user_sessions"),
            (
                CacheKeys.user_refresh_tokens(uid),
                CacheKeys.refresh_token,
                "delete_user_refresh_tokens",
            ),
        ):
            try:
                members = await self._store.smembers(index_key)
                if members:
                    removed += await self._store.delete(*(member_key(m) for m in members))
            except BackendUnavailableError as e:
                self._logger.error(
                    "User data wipe step failed",
                    error=e,
                    operation=operation,
                    user_id=uid,
                )

        try:
            removed += await self._store.delete_by_pattern(CacheKeys.user_data_pattern(uid))
        except BackendUnavailableError as e:
            self._logger.error(
                "User data wipe step failed",
                error=e,
                operation="delete_user_keys",
                user_id=uid,
            )

        self._logger.info("User cache data deleted", user_id=uid, keys_removed=removed)

    async def flush_all(self) -> None:
        """Delete every key under this process's prefix.

        Raises:
            OperationNotAllowedError: When flushing is disabled (production).
            BackendUnavailableError: Backend failure.
        """
        if not self._allow_flush:
            raise OperationNotAllowedError("flush_all is disabled in production")
        removed = await self._store.delete_by_pattern("*")
        self._logger.warning("Cache flushed", keys_removed=removed)

    # ---------------------------------------------------------------------
    # Periodic runner
    # ---------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> CleanupReport:
        """Run both sweeps once."""
        if not await self._backend_ready("run_once"):
            return CleanupReport(skipped=True)
        return CleanupReport(
            expired_sessions=await self.cleanup_expired_sessions(),
            expired_tokens=await self.cleanup_expired_tokens(),
        )

    async def start(self, interval_seconds: float | None = None) -> None:
        """Start the periodic maintenance loop."""
        if self._running:
            return
        if interval_seconds is not None:
            self._interval = interval_seconds
        self._running = True
        self._task = asyncio.create_task(self._loop())
        self._logger.info("Cache maintenance started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop the periodic loop and wait for it to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            self._logger.info("Cache maintenance stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                self._logger.error("Cache maintenance run failed", error=e)
            await asyncio.sleep(self._interval)

    async def _backend_ready(self, operation: str) -> bool:
        if self._store.state is ConnectionState.CONNECTED:
            return True
        try:
            await self._store.connect()
        except BackendUnavailableError as e:
            self._logger.warning(
                "Cache maintenance skipped",
                operation=operation,
                error_code=e.code.value,
            )
            return False
        return True
