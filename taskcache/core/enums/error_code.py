"""Cache-layer error codes (machine-readable).

Error codes follow ENTITY_ACTION_REASON naming convention and travel on every
CacheError so callers and logs can branch on them without string matching.

Categories:
- Validation errors (INVALID_*, VALIDATION_*)
- Serialization errors (SERIALIZATION_*)
- Backend errors (BACKEND_*)
- Policy errors (OPERATION_*)
"""

from enum import Enum


class ErrorCode(Enum):
    """Cache-layer error codes (machine-readable)."""

    # Validation errors
    VALIDATION_FAILED = "validation_failed"
    INVALID_KEY = "invalid_key"
    INVALID_TTL = "invalid_ttl"
    INVALID_WINDOW = "invalid_window"
    INVALID_SESSION_ID = "invalid_session_id"
    INVALID_TOKEN_ID = "invalid_token_id"
    INVALID_USER_ID = "invalid_user_id"
    INVALID_EMAIL = "invalid_email"
    INVALID_IDENTIFIER = "invalid_identifier"
    INVALID_PATTERN = "invalid_pattern"

    # Serialization errors
    SERIALIZATION_FAILED = "serialization_failed"

    # Backend errors
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_TIMEOUT = "backend_timeout"

    # Policy errors
    OPERATION_NOT_ALLOWED = "operation_not_allowed"
