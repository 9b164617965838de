"""
Supervisor loop.

Drives the plugin through setup and the endless "wait, sample, write"
cycle, and decides what every failure means:

- DaemonNotFoundError: no compatible daemon on this host; exit with
  EXIT_DAEMON_MISSING, no retry
- SIGINT/SIGTERM or KeyboardInterrupt: run the cleanup action once and
  exit with EXIT_OK
- anything else: log it, wait retry_delay seconds and redo the whole
  setup; this never gives up
"""

import asyncio
import signal
from collections.abc import Awaitable, Callable, Iterable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from ..const import (
    DAEMON_NAME,
    DEFAULT_LEAD_TIME,
    DEFAULT_RETRY_DELAY,
    EXIT_DAEMON_MISSING,
    EXIT_OK,
    POST_WRITE_DELAY,
)
from ..daemon.base import DaemonClient
from ..errors import DaemonNotFoundError, ShutdownRequested
from ..logging import get_logger
from ..models.payload import DataSource, Interval, Payload, ProtocolVersion, now
from .cleanup import CleanupAction
from .timing import wait_until_next_reading
from .writer import WriterHandle, open_writer


logger = get_logger("plugin.supervisor")

SampleFunction = Callable[[], Awaitable[Iterable[DataSource]]]
WriterFactory = Callable[[Path, ProtocolVersion], WriterHandle]
SleepFunction = Callable[[float], Awaitable[None]]


class SupervisorState(Enum):
    """Lifecycle states of the supervisor."""
    INITIALIZING = "initializing"
    REGISTERED = "registered"
    SAMPLING = "sampling"
    BACKOFF = "backoff"
    TERMINATING = "terminating"


class Supervisor:
    """
    Runs one plugin until it is interrupted or finds no daemon.

    Usage:
        supervisor = Supervisor("cpu-stats", daemon, sample)
        exit_code = await supervisor.run()
    """

    def __init__(
        self,
        name: str,
        daemon: DaemonClient,
        sample: SampleFunction,
        interval: Interval = Interval.FIVE_SECONDS,
        protocol: ProtocolVersion = ProtocolVersion.V2,
        lead_time: float = DEFAULT_LEAD_TIME,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        open_writer: WriterFactory = open_writer,
        cleanup: CleanupAction | None = None,
        sleep: SleepFunction | None = None,
        clock: Callable[[], int] = now,
        handle_signals: bool = True,
    ):
        """
        Initialize the supervisor.

        Args:
            name: Plugin identifier registered with the daemon
            daemon: Registry client; connected during setup, closed on exit
            sample: Coroutine function producing the data sources of a cycle
            interval: Declared sampling interval
            protocol: Protocol version to write
            lead_time: Seconds to have the payload ready before the daemon reads
            retry_delay: Seconds to wait after an unexpected error
            open_writer: Factory for the output writer
            cleanup: Shutdown action holder (a fresh one if None)
            sleep: Replacement for the interruptible sleep (tests)
            clock: Timestamp source for payloads
            handle_signals: Install SIGINT/SIGTERM handlers while running
        """
        self.name = name
        self.daemon = daemon
        self.sample = sample
        self.interval = interval
        self.protocol = protocol
        self.lead_time = lead_time
        self.retry_delay = retry_delay
        self.cleanup = cleanup or CleanupAction()

        self._open_writer = open_writer
        self._sleep_func = sleep
        self._clock = clock
        self._handle_signals = handle_signals

        self._state = SupervisorState.INITIALIZING
        self._writer: WriterHandle | None = None
        self._shutdown = asyncio.Event()
        self.failures = 0

    @property
    def state(self) -> SupervisorState:
        return self._state

    def _set_state(self, state: SupervisorState) -> None:
        if state != self._state:
            logger.debug(f"{self._state.value} -> {state.value}")
            self._state = state

    def request_shutdown(self) -> None:
        """
        Ask the loop to stop at its next safe point.

        Only sets a flag, so it is safe to call from a signal handler.
        """
        self._shutdown.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def _check_shutdown(self) -> None:
        if self._shutdown.is_set():
            raise ShutdownRequested()

    async def _sleep(self, seconds: float) -> None:
        """Sleep, waking early and raising ShutdownRequested on shutdown."""
        self._check_shutdown()
        if self._sleep_func is not None:
            await self._sleep_func(seconds)
        else:
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        self._check_shutdown()

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to request_shutdown() while the loop runs."""
        if not self._handle_signals:
            yield
            return

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # No loop signal support here; Ctrl-C still raises KeyboardInterrupt
                logger.debug(f"Cannot install handler for {sig.name}")
        try:
            yield
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}: deregistering plugin {self.name}...")
        self.request_shutdown()

    async def _initialize(self) -> WriterHandle:
        """Connect, obtain the output path, open the writer, arm cleanup."""
        self._set_state(SupervisorState.INITIALIZING)

        await self.daemon.connect()
        path = await self.daemon.get_path(self.name)

        writer = self._open_writer(path, self.protocol)
        self._writer = writer

        async def cleanup() -> None:
            try:
                await self.daemon.deregister(self.name)
            finally:
                writer.close()

        self.cleanup.install(cleanup)
        logger.info(f"Obtained path={path}")

        self._set_state(SupervisorState.REGISTERED)
        return writer

    async def _cycle(self, writer: WriterHandle) -> None:
        """Wait for the daemon's next reading, sample and write once."""
        self._set_state(SupervisorState.SAMPLING)

        await wait_until_next_reading(
            self.daemon,
            self.name,
            self.interval,
            self.protocol,
            lead_time=self.lead_time,
            sleep=self._sleep,
        )
        self._check_shutdown()

        datasources = await self.sample()
        payload = Payload.create(datasources, timestamp=self._clock())
        writer.write(payload)
        logger.debug(f"Done outputting {len(payload)} data sources to {writer.path}")

        await self._sleep(POST_WRITE_DELAY)

    def _release_writer(self) -> None:
        if self._writer is None:
            return
        try:
            self._writer.close()
        except OSError as e:
            logger.error(f"Failed to remove {self._writer.path}: {e}")
        self._writer = None

    async def _terminate(self) -> int:
        self._set_state(SupervisorState.TERMINATING)
        try:
            if await self.cleanup.run():
                logger.info(f"Plugin {self.name} deregistered")
        except Exception as e:
            # The writer is already closed; an interrupt still exits cleanly
            logger.exception(f"Cleanup failed for plugin {self.name}: {e!r}")
        return EXIT_OK

    async def run(self) -> int:
        """
        Run until shutdown or a fatal error.

        Returns:
            EXIT_OK after an interrupt, EXIT_DAEMON_MISSING without a daemon
        """
        logger.debug("Entering main loop")
        try:
            with self._signal_handlers():
                return await self._run()
        finally:
            await self.daemon.close()
            logger.debug("End")

    async def _run(self) -> int:
        while True:
            try:
                writer = await self._initialize()
                while True:
                    await self._cycle(writer)

            except DaemonNotFoundError as e:
                logger.warning(
                    f"The {DAEMON_NAME} seems not installed ({e}). "
                    f"You probably need to upgrade the {DAEMON_NAME}."
                )
                self._release_writer()
                return EXIT_DAEMON_MISSING

            except (ShutdownRequested, KeyboardInterrupt):
                logger.warning("Shutdown requested; exiting...")
                return await self._terminate()

            except Exception as e:
                self.failures += 1
                logger.exception(
                    f"Unexpected error {e!r}, sleeping for {self.retry_delay:g} seconds..."
                )
                self._set_state(SupervisorState.BACKOFF)
                self._release_writer()
                try:
                    await self._sleep(self.retry_delay)
                except ShutdownRequested:
                    logger.warning("Shutdown requested during backoff; exiting...")
                    return await self._terminate()
