"""Poll loop driving the monitor until cancellation."""

import logging
import threading
from enum import Enum
from typing import Optional

from .monitor import Monitor
from .persistence import PersistenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class DaemonState(Enum):
    """Lifecycle states of the daemon loop."""
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


class CancellationToken:
    """
    One-shot cancellation flag shared with a signal handler.

    Only whether cancellation was requested matters; repeated requests are
    no-ops.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def is_cancelled(self) -> bool:
        """Check for a pending cancellation without blocking."""
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """
        Sleep up to ``timeout`` seconds, waking early on cancellation.

        Returns:
            True if cancellation was requested
        """
        return self._event.wait(timeout=timeout)


class DaemonLoop:
    """
    Runs poll cycles on a fixed interval and saves state once on shutdown.

    The registry is loaded when the loop starts and written back exactly
    once when cancellation is observed. Poll failures are logged and never
    end the loop.
    """

    def __init__(
        self,
        monitor: Monitor,
        persistence: PersistenceAdapter,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        token: Optional[CancellationToken] = None,
    ):
        """
        Initialize the daemon loop.

        Args:
            monitor: Monitor whose registry is loaded and polled
            persistence: Adapter bridging the registry and the path store
            poll_interval: Seconds between poll cycles
            token: Cancellation flag (a new one is created if omitted)
        """
        self.monitor = monitor
        self.persistence = persistence
        self.poll_interval = poll_interval
        self.token = token or CancellationToken()
        self.state = DaemonState.RUNNING
        self._saved = False

    def start(self) -> None:
        """Load the registry into the monitor."""
        self.monitor.set_registry(self.persistence.load())
        logger.info(f"Tracking {len(self.monitor.registry)} path(s)")

    def request_stop(self) -> None:
        """Ask the loop to shut down after the current iteration."""
        self.token.cancel()

    def run_once(self) -> Optional[int]:
        """
        Run a single poll cycle and log its outcome.

        Returns:
            Number of archived paths, or None if the cycle failed
        """
        try:
            count = self.monitor.poll()
        except Exception as e:
            logger.warning(f"Poll cycle failed: {e}")
            return None

        if count > 0:
            logger.info(f"Changed {count} path(s)")
        else:
            logger.info("Not changed")
        return count

    def shutdown(self) -> None:
        """Save the registry. Only the first call has an effect."""
        self.state = DaemonState.SHUTTING_DOWN
        if self._saved:
            return
        self._saved = True

        try:
            self.persistence.save(self.monitor.registry)
        except Exception as e:
            logger.error(f"Failed to save registry: {e}")
            raise
        logger.info("Registry saved")

    def run(self) -> None:
        """
        Run until cancellation is requested (blocking).

        Raises:
            StoreError: If the registry cannot be loaded or saved
        """
        logger.info("Starting")
        self.start()

        while True:
            if self.token.is_cancelled():
                self.shutdown()
                return

            self.run_once()
            self.token.wait(self.poll_interval)
