"""
Process-level helpers: backgrounding and pid files.
"""

import os
import sys
from pathlib import Path


def daemonize(workdir: str = "/", umask: int = 0o022) -> None:
    """
    Detach from the controlling terminal with the classic double fork.

    Must run before the event loop starts and before anything spawns
    threads (the MQTT client, for instance); only the calling thread
    survives a fork.
    """
    if os.fork() > 0:
        os._exit(0)

    os.setsid()

    if os.fork() > 0:
        os._exit(0)

    os.chdir(workdir)
    os.umask(umask)

    sys.stdout.flush()
    sys.stderr.flush()

    with open(os.devnull, "rb", 0) as devnull_in:
        os.dup2(devnull_in.fileno(), sys.stdin.fileno())
    with open(os.devnull, "ab", 0) as devnull_out:
        os.dup2(devnull_out.fileno(), sys.stdout.fileno())
        os.dup2(devnull_out.fileno(), sys.stderr.fileno())


def write_pidfile(path: str | Path) -> Path:
    """Write the current pid, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    path.write_text(f"{os.getpid()}\n")
    return path


def remove_pidfile(path: str | Path) -> None:
    """Remove a pid file if it still names this process."""
    path = Path(path)
    try:
        if int(path.read_text().strip()) == os.getpid():
            path.unlink()
    except (FileNotFoundError, ValueError):
        pass
