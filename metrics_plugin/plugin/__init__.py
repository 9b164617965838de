"""
Plugin lifecycle: timing, output writer, cleanup and supervision.
"""

from .cleanup import CleanupAction
from .supervisor import Supervisor, SupervisorState
from .timing import compute_wait, negotiate_wait, wait_until_next_reading
from .writer import WriterClosedError, WriterHandle, open_writer

__all__ = [
    "CleanupAction",
    "Supervisor",
    "SupervisorState",
    "compute_wait",
    "negotiate_wait",
    "wait_until_next_reading",
    "WriterHandle",
    "WriterClosedError",
    "open_writer",
]
