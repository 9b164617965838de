"""
Clients for the monitoring daemon's plugin registry.
"""

from .base import DaemonClient
from .client import MQTTDaemonClient

__all__ = [
    "DaemonClient",
    "MQTTDaemonClient",
]
