"""
Exception hierarchy shared by the plugin runtime.

The supervisor treats every exception as transient except for
DaemonNotFoundError (fatal) and ShutdownRequested (graceful exit).
"""


class PluginError(Exception):
    """Base class for plugin runtime errors."""


class DaemonError(PluginError):
    """Communication with the monitoring daemon failed."""


class DaemonNotFoundError(DaemonError):
    """The daemon, or the resource a request refers to, does not exist."""


class DaemonUnavailableError(DaemonError):
    """The daemon is known but currently reports itself offline."""


class DaemonTimeoutError(DaemonError):
    """The daemon did not answer a request in time."""


class DaemonRequestError(DaemonError):
    """The daemon answered a request with an error."""

    def __init__(self, method: str, code: str, message: str = ""):
        self.method = method
        self.code = code
        super().__init__(f"{method} failed ({code}): {message}" if message else f"{method} failed ({code})")


class ProtocolError(PluginError):
    """A payload could not be encoded or decoded."""


class ShutdownRequested(PluginError):
    """An operator asked the plugin to stop."""
