"""LoggerProtocol definition for structured logging.

Every cache component receives a logger by constructor injection and only
depends on this protocol. Implementations MUST keep logs structured
(message + key-value context) and safe: cached payloads, tokens and session
contents are never logged, only operation names and identifiers.

Log Levels:
    - DEBUG: Per-call diagnostics (script loads, scan batches)
    - INFO: Lifecycle events (connect, disconnect, cleanup summaries)
    - WARNING: Degraded reads, fail-open decisions, anomalous keys
    - ERROR: Failed writes that propagate to the caller
    - CRITICAL: Backend unreachable after every connection retry

Usage:
    from taskcache.core.container import get_logger
    from taskcache.domain.protocols.logger_protocol import LoggerProtocol

    logger: LoggerProtocol = get_logger()
    logger.warning("Rate limit read degraded", operation="get_rate_limit")

    component_logger = logger.bind(component="session_store")
"""

from __future__ import annotations

from typing import Any, Protocol


class LoggerProtocol(Protocol):
    """Protocol for structured logging adapters.

    Implementations may enrich logs with timestamp and level.
    """

    def debug(self, message: str, /, **context: Any) -> None:
        """Log a debug-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def info(self, message: str, /, **context: Any) -> None:
        """Log an info-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def warning(self, message: str, /, **context: Any) -> None:
        """Log a warning-level message.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            **context: Structured key-value context fields.
        """
        ...

    def error(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log an error-level message with optional exception details.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            error: Optional exception instance; implementation may include
                error_type and error_message fields.
            **context: Structured key-value context fields.
        """
        ...

    def critical(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log a critical-level message.

        Reserved for the backend being unreachable after all retries.

        Args:
            message: Human-readable message (avoid f-strings; use context).
            error: Optional exception instance.
            **context: Structured key-value context fields.
        """
        ...

    def bind(self, **context: Any) -> "LoggerProtocol":
        """Return new logger with permanently bound context.

        Original logger instance remains unchanged.

        Args:
            **context: Context to bind to all future logs.

        Returns:
            New logger instance with bound context.
        """
        ...
