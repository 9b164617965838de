"""
Single-shot shutdown action.
"""

import threading
from collections.abc import Awaitable, Callable

from ..logging import get_logger


logger = get_logger("plugin.cleanup")

Action = Callable[[], Awaitable[None]]


class CleanupAction:
    """
    Holds at most one pending shutdown action and runs it at most once.

    The supervisor installs a new action every time it (re)initializes.
    Whichever caller reaches run() first claims the action; later calls
    are no-ops, so a second signal during shutdown does nothing.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._action: Action | None = None
        self._done = False

    @property
    def pending(self) -> bool:
        """Check if an action is installed and has not run."""
        return self._action is not None and not self._done

    @property
    def done(self) -> bool:
        """Check if run() has been claimed."""
        return self._done

    def install(self, action: Action) -> None:
        """
        Replace the pending action.

        Raises:
            RuntimeError: If cleanup already ran
        """
        with self._lock:
            if self._done:
                raise RuntimeError("Cleanup already ran")
            self._action = action

    def _claim(self) -> Action | None:
        with self._lock:
            if self._done:
                return None
            self._done = True
            action, self._action = self._action, None
            return action

    async def run(self) -> bool:
        """
        Run the pending action if nobody has yet.

        Returns:
            True if this call executed an action
        """
        action = self._claim()
        if action is None:
            logger.debug("Cleanup already performed or nothing to clean up")
            return False

        await action()
        return True
