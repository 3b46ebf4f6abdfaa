"""
Periodic background tasks.

Used for the stale-message reaper and the rate limiter's visitor sweep.
Each task runs on its own daemon thread, sleeps between runs, and can be
stopped: stop() prevents further runs but never interrupts one that is
already executing.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Call ``func`` every ``interval_seconds`` until stopped.

    The first call happens one interval after start(). An exception from
    ``func`` is logged and the loop waits for the next tick.
    """

    def __init__(self, name: str, interval_seconds: float, func: Callable[[], Any]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self.runs = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Started %s (every %.1fs)", self.name, self.interval_seconds)

    def stop(self, timeout: float | None = None) -> bool:
        """
        Signal the loop to exit and wait up to ``timeout`` seconds.

        Returns True if the thread finished within the grace period. A run
        still in flight afterwards is abandoned to process exit.
        """
        self._stop_event.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        finished = not self._thread.is_alive()
        if finished:
            logger.info("Stopped %s", self.name)
        else:
            logger.warning("%s still running after %.1fs grace period", self.name, timeout or 0)
        return finished

    def _loop(self) -> None:
        # wait() returns True as soon as stop() is called
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.func()
            except Exception:
                logger.exception("%s run failed; retrying next tick", self.name)
            finally:
                self.runs += 1
