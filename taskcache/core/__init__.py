"""Core shared kernel.

Foundational utilities used by every cache component:
- Result types for validation helpers
- Cache error hierarchy
- Settings, constants and enums

Composition lives in taskcache.core.container (imported explicitly, not
re-exported here, because it depends on the infrastructure layer).
"""

from taskcache.core.enums import ErrorCode
from taskcache.core.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    CacheError,
    OperationNotAllowedError,
    ValidationError,
)
from taskcache.core.result import Failure, Result, Success

__all__ = [
    "BackendTimeoutError",
    "BackendUnavailableError",
    "CacheError",
    "ErrorCode",
    "Failure",
    "OperationNotAllowedError",
    "Result",
    "Success",
    "ValidationError",
]
