"""
Per-client request throttling.

Token bucket per client identity (a "visitor"). Buckets are created
lazily with a full budget and swept once idle, so memory stays bounded
by the set of recently active clients.
"""

from __future__ import annotations

import ipaddress
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from vaultdrop.core.errors import RateLimitedError, ValidationError
from vaultdrop.core.scheduler import PeriodicTask

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 3
DEFAULT_REFILL_PER_SECOND = 1.0
DEFAULT_IDLE_SECONDS = 180.0  # 3 minutes
DEFAULT_GC_INTERVAL_SECONDS = 60.0


@dataclass
class Visitor:
    """Bucket state for one client identity."""

    client_id: str
    tokens: float
    last_refill: float
    last_seen: float


def client_identity(request: Request) -> str:
    """
    Derive the throttling key from the peer address.

    Raises ValidationError when the address is missing or not an IP, so
    such requests are refused instead of sharing one anonymous bucket.
    """
    client = request.client
    host = client.host if client else None
    if not host:
        raise ValidationError("Could not determine client address")
    try:
        return str(ipaddress.ip_address(host))
    except ValueError as e:
        raise ValidationError(f"Malformed client address: {host!r}") from e


class RateLimiter:
    """
    Token bucket limiter keyed by client identity.

    ``admit`` and ``sweep`` share one lock, so a sweep can never remove a
    visitor halfway through an admission. A visitor that was swept is
    simply recreated with a full bucket on its next request.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        refill_rate: float = DEFAULT_REFILL_PER_SECOND,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._visitors: dict[str, Visitor] = {}
        self._lock = threading.Lock()
        self._gc_task: PeriodicTask | None = None

    @property
    def refill_period(self) -> float:
        """Seconds for one token to come back."""
        return 1.0 / self.refill_rate

    def __len__(self) -> int:
        with self._lock:
            return len(self._visitors)

    def __contains__(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._visitors

    def admit(self, client_id: str) -> bool:
        """Spend one token for client_id. False if the bucket is empty."""
        with self._lock:
            now = self.clock()
            visitor = self._visitors.get(client_id)
            if visitor is None:
                visitor = Visitor(client_id, float(self.capacity), now, now)
                self._visitors[client_id] = visitor
            else:
                elapsed = max(0.0, now - visitor.last_refill)
                visitor.tokens = min(float(self.capacity), visitor.tokens + elapsed * self.refill_rate)
                visitor.last_refill = now

            visitor.last_seen = now
            if visitor.tokens < 1.0:
                return False
            visitor.tokens -= 1.0
            return True

    def require(self, client_id: str) -> None:
        if not self.admit(client_id):
            raise RateLimitedError(client_id)

    def sweep(self) -> int:
        """Forget visitors idle longer than idle_seconds. Returns how many."""
        with self._lock:
            now = self.clock()
            idle = [
                client_id
                for client_id, visitor in self._visitors.items()
                if now - visitor.last_seen > self.idle_seconds
            ]
            for client_id in idle:
                del self._visitors[client_id]

        if idle:
            logger.debug("Swept %d idle visitors", len(idle))
        return len(idle)

    def start_gc(self, interval_seconds: float = DEFAULT_GC_INTERVAL_SECONDS) -> None:
        if self._gc_task is None:
            self._gc_task = PeriodicTask("visitor-gc", interval_seconds, self.sweep)
        self._gc_task.start()

    def stop_gc(self, timeout: float | None = None) -> bool:
        if self._gc_task is None:
            return True
        return self._gc_task.stop(timeout)
