"""
Interface to the monitoring daemon's plugin registry.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from ..models.payload import Interval, ProtocolVersion


class DaemonClient(ABC):
    """
    Registration, path lookup and deregistration for one plugin process.

    Implementations signal a missing daemon (or missing resource) with
    DaemonNotFoundError; every other failure is a DaemonError or OSError.
    """

    async def connect(self) -> None:
        """
        Establish the connection. Must be idempotent.

        Called once per supervisor setup, after the process has been
        daemonized, so implementations may start background tasks here.
        """

    async def close(self) -> None:
        """Release the connection. Must be idempotent."""

    @abstractmethod
    async def register(self, uid: str, interval: Interval, protocol: ProtocolVersion) -> float:
        """
        Register (or re-register) a plugin.

        Returns:
            Seconds until the daemon next reads the plugin's output;
            negative if the daemon considers the plugin overdue
        """
        pass

    @abstractmethod
    async def get_path(self, uid: str) -> Path:
        """Return the file the plugin must write its payloads to."""
        pass

    @abstractmethod
    async def deregister(self, uid: str) -> None:
        """Tell the daemon the plugin is going away."""
        pass
