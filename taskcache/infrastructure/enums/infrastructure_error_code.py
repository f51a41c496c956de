"""Infrastructure-specific error codes.

Internal codes for tracking which backend interaction failed. They ride on
BackendUnavailableError next to the cache-level ErrorCode.

Categories:
- Connection errors (CACHE_CONNECTION_*, CACHE_TIMEOUT)
- Command errors (CACHE_GET/SET/DELETE/SCAN_ERROR)
- Script errors (CACHE_SCRIPT_ERROR)
"""

from enum import Enum


class InfrastructureErrorCode(Enum):
    """Infrastructure-specific error codes."""

    # Connection errors
    CACHE_CONNECTION_ERROR = "cache_connection_error"
    CACHE_TIMEOUT = "cache_timeout"

    # Command errors
    CACHE_GET_ERROR = "cache_get_error"
    CACHE_SET_ERROR = "cache_set_error"
    CACHE_DELETE_ERROR = "cache_delete_error"
    CACHE_SCAN_ERROR = "cache_scan_error"

    # Script errors
    CACHE_SCRIPT_ERROR = "cache_script_error"
