"""
Connectivity state for the offline access service.
"""

from .monitor import (
    ConnectivityMonitor,
    ManualNetworkState,
    NetworkState,
    ObservedNetworkState,
    SocketProbeNetworkState,
)

__all__ = [
    "ConnectivityMonitor",
    "ManualNetworkState",
    "NetworkState",
    "ObservedNetworkState",
    "SocketProbeNetworkState",
]
