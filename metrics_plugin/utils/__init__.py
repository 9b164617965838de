"""
Utility functions and helpers.
"""

from .command import cut, describe_exit, run_command
from .files import list_directory_entries
from .hostid import HostIdentity
from .process import daemonize, remove_pidfile, write_pidfile

__all__ = [
    "run_command",
    "describe_exit",
    "cut",
    "list_directory_entries",
    "HostIdentity",
    "daemonize",
    "write_pidfile",
    "remove_pidfile",
]
