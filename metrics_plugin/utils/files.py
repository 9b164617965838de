"""
Filesystem helpers for samplers that read from /proc or /sys style trees.
"""

import os
from pathlib import Path


def list_directory_entries(path: str | Path) -> list[str]:
    """
    Names of the entries in a directory, sorted.

    The ``.`` and ``..`` entries are never included.

    Raises:
        OSError: If the directory cannot be read
    """
    with os.scandir(path) as entries:
        return sorted(entry.name for entry in entries if entry.name not in (".", ".."))
