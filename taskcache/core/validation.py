"""Validation framework for cache inputs.

Every validator returns a Result so the calling component decides the policy:
write paths call ``require()`` and let the ValidationError propagate, read and
delete paths match on Failure and return a benign default instead.

Usage:
    from taskcache.core.validation import require, validate_ttl
    from taskcache.core.result import Failure, Success

    ttl = require(validate_ttl(ttl_seconds))  # raises ValidationError

    match validate_session_id(session_id):
        case Success(value=sid):
            ...
        case Failure():
            return None
"""

from typing import Any

from taskcache.core.constants import (
    EMAIL_PATTERN,
    GLOB_CHARACTERS,
    IDENTIFIER_PATTERN,
    MAX_EMAIL_LENGTH,
    MAX_IDENTIFIER_LENGTH,
    MAX_KEY_LENGTH,
    MAX_RATE_LIMIT_WINDOW_SECONDS,
    MAX_TTL_SECONDS,
)
from taskcache.core.enums import ErrorCode
from taskcache.core.errors import ValidationError
from taskcache.core.result import Failure, Result, Success


def require[T](result: Result[T]) -> T:
    """Unwrap a validation result, raising its error on failure.

    Args:
        result: Result returned by one of the validators in this module.

    Returns:
        The validated value.

    Raises:
        ValidationError: If the result is a Failure.
    """
    match result:
        case Success(value=value):
            return value
        case Failure(error=error):
            raise error
    raise TypeError(f"Unexpected result type: {type(result).__name__}")


def validate_key(key: Any, *, max_length: int = MAX_KEY_LENGTH) -> Result[str]:
    """Validate a cache key.

    Args:
        key: Candidate key.
        max_length: Maximum allowed length (callers subtract their prefix).

    Returns:
        Success with key if valid, Failure with ValidationError otherwise.
    """
    if not isinstance(key, str) or not key.strip():
        return Failure(
            error=ValidationError(
                "Cache key cannot be empty",
                code=ErrorCode.INVALID_KEY,
                field="key",
            )
        )
    if len(key) > max_length:
        return Failure(
            error=ValidationError(
                f"Cache key exceeds {max_length} characters",
                code=ErrorCode.INVALID_KEY,
                field="key",
                details={"length": len(key)},
            )
        )
    return Success(value=key)


def validate_ttl(ttl: Any, *, field: str = "ttl") -> Result[int]:
    """Validate a TTL in seconds (1 .. 7 days).

    Args:
        ttl: Candidate TTL.
        field: Argument name reported on failure.

    Returns:
        Success with TTL if valid, Failure with ValidationError otherwise.
    """
    # bool is an int subclass
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        return Failure(
            error=ValidationError(
                f"{field} must be an integer number of seconds",
                code=ErrorCode.INVALID_TTL,
                field=field,
            )
        )
    if not 1 <= ttl <= MAX_TTL_SECONDS:
        return Failure(
            error=ValidationError(
                f"{field} must be between 1 and {MAX_TTL_SECONDS} seconds",
                code=ErrorCode.INVALID_TTL,
                field=field,
                details={"ttl": ttl},
            )
        )
    return Success(value=ttl)


def validate_window(window_seconds: Any) -> Result[int]:
    """Validate a fixed rate-limit window (1 .. 24 hours).

    Args:
        window_seconds: Candidate window length.

    Returns:
        Success with window if valid, Failure with ValidationError otherwise.
    """
    if isinstance(window_seconds, bool) or not isinstance(window_seconds, int):
        return Failure(
            error=ValidationError(
                "window_seconds must be an integer number of seconds",
                code=ErrorCode.INVALID_WINDOW,
                field="window_seconds",
            )
        )
    if not 1 <= window_seconds <= MAX_RATE_LIMIT_WINDOW_SECONDS:
        return Failure(
            error=ValidationError(
                f"window_seconds must be between 1 and {MAX_RATE_LIMIT_WINDOW_SECONDS}",
                code=ErrorCode.INVALID_WINDOW,
                field="window_seconds",
                details={"window_seconds": window_seconds},
            )
        )
    return Success(value=window_seconds)


def validate_identifier(
    value: Any,
    *,
    field: str,
    code: ErrorCode,
) -> Result[str]:
    """Validate an opaque id (session, refresh token, user).

    Ids are embedded in keys and in SCAN patterns, so ':' and glob
    characters are rejected.

    Args:
        value: Candidate id.
        field: Argument name reported on failure.
        code: Error code reported on failure.

    Returns:
        Success with id if valid, Failure with ValidationError otherwise.
    """
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.match(value):
        return Failure(
            error=ValidationError(
                f"{field} has an invalid format",
                code=code,
                field=field,
            )
        )
    return Success(value=value)


def validate_session_id(session_id: Any) -> Result[str]:
    """Validate a session id."""
    return validate_identifier(
        session_id, field="session_id", code=ErrorCode.INVALID_SESSION_ID
    )


def validate_token_id(token_id: Any) -> Result[str]:
    """Validate a refresh token id."""
    return validate_identifier(token_id, field="token_id", code=ErrorCode.INVALID_TOKEN_ID)


def validate_user_id(user_id: Any) -> Result[str]:
    """Validate a user id."""
    return validate_identifier(user_id, field="user_id", code=ErrorCode.INVALID_USER_ID)


def validate_rate_limit_identifier(identifier: Any) -> Result[str]:
    """Validate a caller-supplied rate-limit identifier.

    Identifiers are free-form (IP addresses, "general:1.2.3.4", route names)
    but may not be empty, contain whitespace or glob characters, or exceed
    MAX_IDENTIFIER_LENGTH.

    Args:
        identifier: Candidate identifier.

    Returns:
        Success with identifier if valid, Failure with ValidationError otherwise.
    """
    if (
        not isinstance(identifier, str)
        or not identifier
        or len(identifier) > MAX_IDENTIFIER_LENGTH
        or any(ch in GLOB_CHARACTERS or ch.isspace() for ch in identifier)
    ):
        return Failure(
            error=ValidationError(
                "Rate limit identifier has an invalid format",
                code=ErrorCode.INVALID_IDENTIFIER,
                field="identifier",
            )
        )
    return Success(value=identifier)


def normalize_email(email: Any) -> Result[str]:
    """Validate an email address and normalize it for use as a key.

    Args:
        email: Candidate email address.

    Returns:
        Success with the stripped, lower-cased email, Failure otherwise.
    """
    if not isinstance(email, str):
        return Failure(
            error=ValidationError(
                "Email must be a string",
                code=ErrorCode.INVALID_EMAIL,
                field="email",
            )
        )
    normalized = email.strip().lower()
    if (
        len(normalized) > MAX_EMAIL_LENGTH
        or not EMAIL_PATTERN.match(normalized)
        or any(ch in GLOB_CHARACTERS for ch in normalized)
    ):
        return Failure(
            error=ValidationError(
                "Invalid email format",
                code=ErrorCode.INVALID_EMAIL,
                field="email",
            )
        )
    return Success(value=normalized)


def validate_pattern(pattern: Any) -> Result[str]:
    """Validate a SCAN MATCH pattern.

    Args:
        pattern: Candidate glob pattern.

    Returns:
        Success with pattern if valid, Failure with ValidationError otherwise.
    """
    if not isinstance(pattern, str) or not pattern or any(ch.isspace() for ch in pattern):
        return Failure(
            error=ValidationError(
                "Key pattern cannot be empty or contain whitespace",
                code=ErrorCode.INVALID_PATTERN,
                field="pattern",
            )
        )
    return Success(value=pattern)
