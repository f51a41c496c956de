"""Infrastructure enums package.

Exports all infrastructure-level enums for convenient importing.

Usage:
    from taskcache.infrastructure.enums import InfrastructureErrorCode
"""

from taskcache.infrastructure.enums.infrastructure_error_code import (
    InfrastructureErrorCode,
)

__all__ = ["InfrastructureErrorCode"]
