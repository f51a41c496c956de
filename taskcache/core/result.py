"""Validation outcomes for cache inputs.

Validators never raise. They hand back either the normalized value or the
ValidationError that a write path would raise, and the calling component
chooses the policy: writes unwrap with ``require()``, reads and deletes match
on Failure and fall back to None, False, 0 or an empty list.

Usage:
    match validate_session_id(session_id):
        case Success(value=sid):
            key = CacheKeys.session(sid)
        case Failure(error=err):
            logger.debug("Rejected session id", field=err.field)
"""

from dataclasses import dataclass

from taskcache.core.errors import ValidationError


@dataclass(frozen=True, slots=True, kw_only=True)
class Success[T]:
    """Accepted input, already normalized (trimmed, lowercased, coerced)."""

    value: T


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure:
    """Rejected input.

    Attributes:
        error: Error a write path raises as-is; carries the code and field.
    """

    error: ValidationError


type Result[T] = Success[T] | Failure
