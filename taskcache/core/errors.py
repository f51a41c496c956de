"""Cache-layer exception hierarchy.

Callers of the cache component never see redis-py exception types. Backend
failures are mapped to BackendUnavailableError (or its timeout subclass) at
the adapter boundary, malformed input is rejected with ValidationError before
any backend call.

Error Hierarchy:
    CacheError (base - inherits from Exception)
    ├── ValidationError (malformed key, TTL, identifier, email)
    ├── BackendUnavailableError (connectivity or command failure)
    │   └── BackendTimeoutError (socket/command timeout)
    └── OperationNotAllowedError (destructive call in a guarded environment)

Whether an error reaches the caller depends on the operation class: session
and token writes propagate, rate-limit/profile/login-attempt reads degrade to
safe defaults and log a warning instead.
"""

from typing import Any

from taskcache.core.enums import ErrorCode
from taskcache.infrastructure.enums import InfrastructureErrorCode


class CacheError(Exception):
    """Base exception for cache component failures.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable error message.
        details: Optional context for debugging (never secret values).
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of error."""
        return f"{self.code.value}: {self.message}"


class ValidationError(CacheError):
    """Input validation failure, raised before any backend call.

    Attributes:
        field: Name of the argument that failed validation.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.field = field


class BackendUnavailableError(CacheError):
    """Key-value backend could not be reached or rejected the command.

    Attributes:
        operation: Adapter operation that failed (get, set, eval, ...).
        infrastructure_code: Backend-level error classification.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        infrastructure_code: InfrastructureErrorCode = (
            InfrastructureErrorCode.CACHE_CONNECTION_ERROR
        ),
        code: ErrorCode = ErrorCode.BACKEND_UNAVAILABLE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.infrastructure_code = infrastructure_code


class BackendTimeoutError(BackendUnavailableError):
    """Backend call exceeded its socket timeout.

    Treated exactly like BackendUnavailableError by every policy; the subclass
    only exists so logs and metrics can tell the two apart.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            infrastructure_code=InfrastructureErrorCode.CACHE_TIMEOUT,
            code=ErrorCode.BACKEND_TIMEOUT,
            details=details,
        )


class OperationNotAllowedError(CacheError):
    """Operation refused by environment policy (e.g. flush in production)."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message, code=ErrorCode.OPERATION_NOT_ALLOWED, details=details
        )
