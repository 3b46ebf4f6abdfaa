"""
Stale message reaper.

Background task that periodically destroys messages nobody read within
the TTL (default 30 days), checking every 5 minutes by default.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable

from vaultdrop.core.errors import BackendUnavailableError
from vaultdrop.core.message_logic import DEFAULT_TTL, expiry_cutoff, utcnow
from vaultdrop.core.scheduler import PeriodicTask

if TYPE_CHECKING:
    from vaultdrop.infra.store import PersistentStore

logger = logging.getLogger(__name__)

DEFAULT_REAPER_INTERVAL_SECONDS = 300  # 5 minutes


@dataclass
class ReapStats:
    """Outcome of one sweep."""

    purged: int = 0
    cutoff: datetime | None = None
    failed: bool = False
    duration_seconds: float = 0.0


class Reaper:
    """
    Periodically purges undelivered messages older than the TTL.

    A failed sweep is logged and retried on the next tick; it never
    raises into the scheduler or the request path.
    """

    def __init__(
        self,
        store: PersistentStore,
        ttl: timedelta = DEFAULT_TTL,
        interval_seconds: float = DEFAULT_REAPER_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl = ttl
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.last_stats: ReapStats | None = None
        self._task: PeriodicTask | None = None

    def run_once(self) -> ReapStats:
        """
        Run a single sweep.

        Returns:
            Statistics for the sweep; ``failed`` is set if the backend errored
        """
        start_time = time.monotonic()
        stats = ReapStats(cutoff=expiry_cutoff(self.clock(), self.ttl))

        try:
            stats.purged = self.store.delete_older_than(stats.cutoff)
            if stats.purged > 0:
                logger.info(
                    "Purged %d messages created before %s",
                    stats.purged,
                    stats.cutoff.isoformat(),
                )
        except BackendUnavailableError as e:
            stats.failed = True
            logger.warning("Stale message sweep failed, will retry next tick: %s", e)

        stats.duration_seconds = time.monotonic() - start_time
        self.last_stats = stats
        return stats

    def start(self) -> None:
        if self._task is None:
            self._task = PeriodicTask("message-reaper", self.interval_seconds, self.run_once)
        self._task.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Stop scheduling sweeps; wait up to timeout for one in flight."""
        if self._task is None:
            return True
        return self._task.stop(timeout)
