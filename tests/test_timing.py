"""
Tests for registration and wait time computation.
"""

import asyncio
import logging

import pytest

from conftest import FakeDaemon, SleepRecorder
from metrics_plugin.models.payload import Interval, ProtocolVersion
from metrics_plugin.plugin.timing import compute_wait, negotiate_wait, wait_until_next_reading


@pytest.mark.parametrize("next_reading", [0.7, 1.0, 4.2, 5.0, 30.0])
def test_wait_is_reading_minus_lead_time(next_reading: float) -> None:
    """Readings far enough ahead are only shifted by the lead time."""
    assert compute_wait(next_reading, lead_time=0.5) == pytest.approx(next_reading - 0.5)


@pytest.mark.parametrize("next_reading", [0.59, 0.5, 0.05, 0.0, -2.0])
def test_short_wait_is_pushed_out_by_one_cycle(next_reading: float) -> None:
    """A wait under 0.1s (or negative) gets one cycle added."""
    expected = next_reading - 0.5 + 5.0
    assert compute_wait(next_reading, lead_time=0.5, cycle_length=5.0) == pytest.approx(expected)


def test_negotiate_wait_registers_every_call() -> None:
    """Each negotiation re-registers; nothing is cached between cycles."""
    daemon = FakeDaemon(readings=[5.0, 0.05])

    async def negotiate_twice() -> list[float]:
        return [
            await negotiate_wait(daemon, "cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2, 0.5),
            await negotiate_wait(daemon, "cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2, 0.5),
        ]

    first, second = asyncio.run(negotiate_twice())

    assert first == pytest.approx(4.5)
    assert second == pytest.approx(4.55)
    assert daemon.registrations == [
        ("cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2),
        ("cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2),
    ]


def test_cycle_length_follows_interval() -> None:
    daemon = FakeDaemon(readings=[0.0])

    wait = asyncio.run(
        negotiate_wait(daemon, "cpu", Interval.ONE_MINUTE, ProtocolVersion.V1, lead_time=0.5)
    )

    assert wait == pytest.approx(59.5)


def test_overdue_daemon_does_not_sleep(caplog: pytest.LogCaptureFixture) -> None:
    """A wait that is still not positive after adjustment skips the sleep."""
    caplog.set_level(logging.DEBUG, logger="metrics_plugin")
    daemon = FakeDaemon(readings=[-10.0])
    sleep = SleepRecorder()

    wait = asyncio.run(
        wait_until_next_reading(
            daemon, "cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2, 0.5, sleep=sleep
        )
    )

    assert wait == pytest.approx(-5.5)
    assert sleep.calls == []
    assert "overdue by 5.5 seconds" in caplog.text


def test_positive_wait_sleeps(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="metrics_plugin")
    sleep = SleepRecorder()

    asyncio.run(
        wait_until_next_reading(
            FakeDaemon(readings=[3.0]), "cpu", Interval.FIVE_SECONDS, ProtocolVersion.V2, 0.5, sleep=sleep
        )
    )

    assert sleep.calls == [pytest.approx(2.5)]
    assert "Sleeping for 2.5 seconds" in caplog.text
