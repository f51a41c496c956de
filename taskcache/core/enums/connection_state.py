"""Backend connection states.

Maintenance skips its run and health checks report unhealthy while the store
adapter is not CONNECTED.
"""

from enum import Enum


class ConnectionState(str, Enum):
    """Connection state of the store adapter."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
