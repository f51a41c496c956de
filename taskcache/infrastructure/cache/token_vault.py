"""Refresh token vault.

Key Patterns:
    - refresh:{token_id} -> JSON serialized token payload
    - user:{user_id}:refresh_tokens -> SET of token ids

Revocation is deletion: once delete_refresh_token returns, the token can no
longer be redeemed. The per-user index exists so account wipes can find
tokens whose keys do not carry the user id.
"""

from typing import Any

from taskcache.core.constants import REFRESH_TOKEN_TTL_DEFAULT
from taskcache.core.errors import BackendUnavailableError
from taskcache.core.result import Failure, Success
from taskcache.core.validation import require, validate_token_id, validate_ttl, validate_user_id
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics
from taskcache.infrastructure.cache.session_store import INDEX_ADD_SCRIPT, resolve_owner


class TokenVault:
    """Refresh token storage with per-user index.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        metrics: Shared hit/miss counters.
        default_ttl: Token lifetime used when no TTL is passed.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        metrics: CacheMetrics,
        default_ttl: int = REFRESH_TOKEN_TTL_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._metrics = metrics
        self._default_ttl = default_ttl

    async def store_refresh_token(
        self,
        token_id: str,
        data: Any,
        ttl_seconds: int | None = None,
        *,
        user_id: str | None = None,
    ) -> None:
        """Store a refresh token payload.

        Raises:
            ValidationError: Malformed id, owner or TTL (max 7 days).
            BackendUnavailableError: Backend failure.
        """
        tid = require(validate_token_id(token_id))
        ttl = require(
            validate_ttl(
                self._default_ttl if ttl_seconds is None else ttl_seconds,
                field="ttl_seconds",
            )
        )
        owner = resolve_owner(data, user_id)
        if owner is not None:
            owner = require(validate_user_id(owner))

        try:
            await self._store.set_json(CacheKeys.refresh_token(tid), data, ttl=ttl)
            if owner is not None:
                await self._store.run_script(
                    INDEX_ADD_SCRIPT, [CacheKeys.user_refresh_tokens(owner)], [tid, ttl]
                )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.REFRESH)
            self._logger.error(
                "Refresh token write failed",
                error=e,
                operation="store_refresh_token",
                token_id=tid,
            )
            raise

    async def get_refresh_token(self, token_id: str, type_: Any = None) -> Any:
        """Fetch a refresh token payload.

        Returns:
            Payload, or None if absent, revoked, malformed or backend failure.
        """
        if isinstance(tid_result := validate_token_id(token_id), Failure):
            return None
        tid = tid_result.value

        try:
            token = await self._store.get_json(CacheKeys.refresh_token(tid), type_)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.REFRESH)
            self._logger.warning(
                "Refresh token read degraded",
                operation="get_refresh_token",
                token_id=tid,
                error_code=e.code.value,
            )
            return None

        self._metrics.record_lookup(CacheKeys.REFRESH, token)
        return token

    async def delete_refresh_token(self, token_id: str, *, user_id: str | None = None) -> bool:
        """Revoke a refresh token.

        Returns:
            True if the token existed, False otherwise.

        Raises:
            BackendUnavailableError: Backend failure.
        """
        if isinstance(tid_result := validate_token_id(token_id), Failure):
            return False
        tid = tid_result.value
        key = CacheKeys.refresh_token(tid)

        try:
            owner = user_id
            if owner is None:
                owner = resolve_owner(await self._store.get_json(key))
            deleted = await self._store.delete(key)
            if owner is not None and isinstance(validate_user_id(owner), Success):
                await self._store.srem(CacheKeys.user_refresh_tokens(owner), tid)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.REFRESH)
            self._logger.error(
                "Refresh token revoke failed",
                error=e,
                operation="delete_refresh_token",
                token_id=tid,
            )
            raise

        if deleted:
            self._logger.info("Refresh token revoked", token_id=tid)
        return deleted > 0

    async def get_user_refresh_tokens(self, user_id: str) -> list[str]:
        """Token ids indexed under a user; empty on failure."""
        if isinstance(uid_result := validate_user_id(user_id), Failure):
            return []
        uid = uid_result.value
        try:
            members = await self._store.smembers(CacheKeys.user_refresh_tokens(uid))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.REFRESH)
            self._logger.warning(
                "Refresh token index read degraded",
                operation="get_user_refresh_tokens",
                user_id=uid,
                error_code=e.code.value,
            )
            return []
        return sorted(members)
