"""Core enums package.

Exports all core-level enums for convenient importing.

Usage:
    from taskcache.core.enums import ConnectionState, ErrorCode, Environment
"""

from taskcache.core.enums.connection_state import ConnectionState
from taskcache.core.enums.environment import Environment
from taskcache.core.enums.error_code import ErrorCode

__all__ = ["ConnectionState", "ErrorCode", "Environment"]
