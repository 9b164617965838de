"""
Run external commands and turn their output into samples.

The command's stdout is read line by line while it runs. Each line goes
through a transform; lines for which the transform returns None are
skipped. The exit status is logged but never treated as an error, so a
command that dies halfway still yields the lines it printed. A line
longer than LINE_LIMIT ends the read the same way.
"""

import asyncio
import signal
from collections.abc import Callable
from typing import TypeVar

from ..logging import get_logger


logger = get_logger("collectors.command")

T = TypeVar("T")

# Largest single output line accepted from a command
LINE_LIMIT = 1024 * 1024


def cut(line: str) -> list[str]:
    """Split a line on spaces and tabs, dropping empty fields."""
    return [field for field in line.replace("\t", " ").split(" ") if field]


def describe_exit(pid: int, returncode: int) -> str:
    """Describe how a child process terminated."""
    if returncode >= 0:
        return f"Process {pid} exited normally with code {returncode}"

    signum = -returncode
    try:
        name = signal.Signals(signum).name
    except ValueError:
        name = "unknown"
    return f"Process {pid} was killed by signal {signum} ({name})"


async def run_command(cmdline: str, transform: Callable[[str], T | None]) -> list[T]:
    """
    Execute a command and collect transformed output lines.

    Args:
        cmdline: Program and arguments separated by whitespace (no shell)
        transform: Called with each stdout line (without line terminator);
            return None to skip the line

    Returns:
        Transformed values in the order their lines were printed

    Raises:
        ValueError: If the command line is empty
        OSError: If the program cannot be started
    """
    args = cmdline.split()
    if not args:
        raise ValueError("Empty command line")

    logger.debug(f"Forking command {cmdline}")
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
        limit=LINE_LIMIT,
    )

    if proc.stdout is None:
        raise RuntimeError(f"No stdout pipe for {cmdline}")

    values: list[T] = []
    try:
        while True:
            try:
                raw = await proc.stdout.readline()
            except ValueError as e:
                # Line longer than LINE_LIMIT; the child is killed below
                logger.warning(
                    f"Output of {cmdline} has a line over {LINE_LIMIT} bytes ({e}); "
                    f"keeping the {len(values)} values read before it"
                )
                break
            if not raw:
                break
            value = transform(raw.decode(errors="replace").rstrip("\r\n"))
            if value is not None:
                values.append(value)
    finally:
        if proc.returncode is None and not proc.stdout.at_eof():
            # Transform failed, a line was too long, or we were cancelled
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        returncode = await proc.wait()
        logger.debug(describe_exit(proc.pid, returncode))

    return values
