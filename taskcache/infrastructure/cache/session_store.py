"""Session store backed by the key-value cache.

Key Patterns:
    - session:{session_id} -> JSON serialized session payload
    - user:{user_id}:sessions -> SET of session ids (soft index)

Failure policy:
    - store/delete/touch/set_user_sessions raise BackendUnavailableError:
      a login that cannot persist its session must fail loudly
    - get_session returns None and get_user_sessions returns [] on backend
      failure; the caller treats it as "re-authenticate"

Index additions run as one Lua script (SADD + TTL extension), so the index
always has an expiry and never expires before the newest session it lists.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from taskcache.core.constants import SESSION_TTL_DEFAULT
from taskcache.core.errors import BackendUnavailableError
from taskcache.core.result import Failure, Success
from taskcache.core.validation import (
    require,
    validate_session_id,
    validate_ttl,
    validate_user_id,
)
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics

INDEX_ADD_SCRIPT = "index_add.lua"


def resolve_owner(data: Any, user_id: Any = None) -> str | None:
    """Determine the owning user of a session or token payload.

    An explicit user_id wins; otherwise a ``user_id``/``userId`` field of a
    mapping, or a ``user_id`` attribute of a dataclass/model, is used.

    Returns:
        Owner id as string, or None if the payload carries no owner.
    """
    owner = user_id
    if owner is None:
        if isinstance(data, Mapping):
            owner = data.get("user_id", data.get("userId"))
        else:
            owner = getattr(data, "user_id", None)
    return None if owner is None else str(owner)


class SessionStore:
    """Session payloads plus the per-user session index.

    Note: Does NOT inherit from a protocol (uses structural typing).

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        metrics: Shared hit/miss counters.
        default_ttl: Session lifetime used when no TTL is passed.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        metrics: CacheMetrics,
        default_ttl: int = SESSION_TTL_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._metrics = metrics
        self._default_ttl = default_ttl

    async def store_session(
        self,
        session_id: str,
        data: Any,
        ttl_seconds: int | None = None,
        *,
        user_id: str | None = None,
    ) -> None:
        """Store a session payload and index it under its owner.

        Args:
            session_id: Opaque session id.
            data: JSON-serializable payload (dict, dataclass, pydantic model).
            ttl_seconds: Lifetime; defaults to the configured session TTL.
            user_id: Owner; taken from the payload when omitted.

        Raises:
            ValidationError: Malformed id, owner or TTL.
            BackendUnavailableError: Backend failure.
        """
        sid = require(validate_session_id(session_id))
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
            await self._store.set_json(CacheKeys.session(sid), data, ttl=ttl)
            if owner is not None:
                await self._store.run_script(
                    INDEX_ADD_SCRIPT, [CacheKeys.user_sessions(owner)], [sid, ttl]
                )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.error(
                "Session write failed",
                error=e,
                operation="store_session",
                session_id=sid,
            )
            raise

    async def get_session(self, session_id: str, type_: Any = None) -> Any:
        """Fetch a session payload.

        Returns:
            Payload (validated into type_ when given), or None if absent,
            malformed id or backend failure.
        """
        if isinstance(sid_result := validate_session_id(session_id), Failure):
            return None
        sid = sid_result.value

        try:
            session = await self._store.get_json(CacheKeys.session(sid), type_)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.warning(
                "Session read degraded",
                operation="get_session",
                session_id=sid,
                error_code=e.code.value,
            )
            return None

        self._metrics.record_lookup(CacheKeys.SESSION, session)
        return session

    async def delete_session(self, session_id: str, *, user_id: str | None = None) -> bool:
        """Delete a session and drop it from its owner's index.

        Args:
            session_id: Session to delete.
            user_id: Owner; read from the stored payload when omitted.

        Returns:
            True if the session existed, False otherwise (or malformed id).

        Raises:
            BackendUnavailableError: Backend failure.
        """
        if isinstance(sid_result := validate_session_id(session_id), Failure):
            return False
        sid = sid_result.value
        key = CacheKeys.session(sid)

        try:
            owner = user_id
            if owner is None:
                owner = resolve_owner(await self._store.get_json(key))
            deleted = await self._store.delete(key)
            if owner is not None and isinstance(validate_user_id(owner), Success):
                await self._store.srem(CacheKeys.user_sessions(owner), sid)
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.error(
                "Session delete failed",
                error=e,
                operation="delete_session",
                session_id=sid,
            )
            raise

        return deleted > 0

    async def touch_session(self, session_id: str, ttl_seconds: int | None = None) -> bool:
        """Extend a live session's lifetime on activity.

        Returns:
            True if the session existed and was extended.

        Raises:
            ValidationError: Malformed TTL.
            BackendUnavailableError: Backend failure.
        """
        ttl = require(
            validate_ttl(
                self._default_ttl if ttl_seconds is None else ttl_seconds,
                field="ttl_seconds",
            )
        )
        if isinstance(sid_result := validate_session_id(session_id), Failure):
            return False
        sid = sid_result.value
        key = CacheKeys.session(sid)

        try:
            payload = await self._store.get_json(key)
            if payload is None:
                return False
            if not await self._store.expire(key, ttl):
                return False
            owner = resolve_owner(payload)
            if owner is not None and isinstance(validate_user_id(owner), Success):
                await self._store.run_script(
                    INDEX_ADD_SCRIPT, [CacheKeys.user_sessions(owner)], [sid, ttl]
                )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.error(
                "Session touch failed",
                error=e,
                operation="touch_session",
                session_id=sid,
            )
            raise

        return True

    async def set_user_sessions(
        self,
        user_id: str,
        session_ids: Iterable[str],
        ttl: int | None = None,
    ) -> None:
        """Replace a user's session index in one transaction.

        An empty list removes the index.

        Raises:
            ValidationError: Malformed user id, session id or TTL.
            BackendUnavailableError: Backend failure.
        """
        uid = require(validate_user_id(user_id))
        ids = [require(validate_session_id(sid)) for sid in session_ids]
        index_ttl = require(validate_ttl(self._default_ttl if ttl is None else ttl))

        try:
            await self._store.replace_set(
                CacheKeys.user_sessions(uid), ids, ttl=index_ttl
            )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.error(
                "Session index write failed",
                error=e,
                operation="set_user_sessions",
                user_id=uid,
            )
            raise

    async def get_user_sessions(self, user_id: str) -> list[str]:
        """Session ids indexed under a user (never None).

        Returns:
            Sorted ids; empty on malformed id or backend failure.
        """
        if isinstance(uid_result := validate_user_id(user_id), Failure):
            return []
        uid = uid_result.value

        try:
            members = await self._store.smembers(CacheKeys.user_sessions(uid))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.SESSION)
            self._logger.warning(
                "Session index read degraded",
                operation="get_user_sessions",
                user_id=uid,
                error_code=e.code.value,
            )
            return []
        return sorted(members)
