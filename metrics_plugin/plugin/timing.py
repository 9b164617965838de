"""
Registration and timing.

Every cycle the plugin re-registers with the daemon, which answers with
the number of seconds until it next reads the plugin's file. The plugin
aims to have its payload written ``lead_time`` seconds before that.
"""

import asyncio
from collections.abc import Awaitable, Callable

from ..const import DEFAULT_LEAD_TIME, MIN_WAIT_TIME
from ..daemon.base import DaemonClient
from ..logging import get_logger
from ..models.payload import Interval, ProtocolVersion


logger = get_logger("plugin.timing")


def compute_wait(
    next_reading: float,
    lead_time: float = DEFAULT_LEAD_TIME,
    cycle_length: float = Interval.FIVE_SECONDS.seconds,
) -> float:
    """
    Seconds to wait before sampling.

    A wait shorter than MIN_WAIT_TIME (including a negative one, when the
    daemon is behind schedule) is pushed out by one cycle so the plugin
    does not spin against a daemon that is late.
    """
    wait_time = next_reading - lead_time
    if wait_time < MIN_WAIT_TIME:
        wait_time += cycle_length
    return wait_time


async def negotiate_wait(
    daemon: DaemonClient,
    plugin_name: str,
    interval: Interval,
    protocol: ProtocolVersion,
    lead_time: float = DEFAULT_LEAD_TIME,
    cycle_length: float | None = None,
) -> float:
    """
    Register with the daemon and compute the wait before the next sample.

    Args:
        daemon: Registry client
        plugin_name: Plugin identifier
        interval: Declared sampling interval
        protocol: Protocol version the plugin writes
        lead_time: Margin to have the payload ready before the daemon reads
        cycle_length: Nominal cycle length (defaults to the interval's)

    Returns:
        Wait in seconds; zero or negative means the daemon is overdue
    """
    next_reading = await daemon.register(plugin_name, interval, protocol)
    if cycle_length is None:
        cycle_length = interval.seconds

    wait_time = compute_wait(next_reading, lead_time, cycle_length)
    logger.debug(f"Next reading in {next_reading:.3f}s, wait time {wait_time:.3f}s")
    return wait_time


async def wait_until_next_reading(
    daemon: DaemonClient,
    plugin_name: str,
    interval: Interval,
    protocol: ProtocolVersion,
    lead_time: float = DEFAULT_LEAD_TIME,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> float:
    """Negotiate the wait and suspend for it. Returns the wait time."""
    wait_time = await negotiate_wait(daemon, plugin_name, interval, protocol, lead_time)

    if wait_time > 0:
        logger.debug(f"Sleeping for {wait_time:.1f} seconds...")
        await sleep(wait_time)
    else:
        logger.info(f"Daemon says next reading is overdue by {-wait_time:.1f} seconds; not sleeping")

    return wait_time
