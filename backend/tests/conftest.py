"""Pytest configuration and shared fixtures."""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from vaultdrop.config import Settings
from vaultdrop.core.message import MessageLifecycle
from vaultdrop.core.rate_limiter import RateLimiter
from vaultdrop.infra.postgres import build_engine, init_db
from vaultdrop.infra.store import SQLMessageStore
from vaultdrop.main import create_app
from vaultdrop.services.notifier import NotificationDispatcher, NotificationResult

CLIENT_ADDRESS = ("203.0.113.7", 50000)


class FakeClock:
    """Settable UTC clock for lifecycle and reaper tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock (seconds) for the rate limiter."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Notifier spy; optionally reports failure like an SMTP outage would."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: List[Tuple[str, Optional[str]]] = []

    def send(self, address: str, reference_label: Optional[str]) -> NotificationResult:
        self.sent.append((address, reference_label))
        if self.ok:
            return NotificationResult(address, ok=True)
        return NotificationResult(address, ok=False, error="smtp down")


@pytest.fixture
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'vault.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> SQLMessageStore:
    return SQLMessageStore(engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier):
    dispatcher = NotificationDispatcher(notifier)
    yield dispatcher
    dispatcher.shutdown(wait=True)


@pytest.fixture
def lifecycle(store, dispatcher, clock) -> MessageLifecycle:
    return MessageLifecycle(store, dispatcher, clock=clock)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'vault.db'}",
        base_url="https://vaultdrop.test",
        route_limit_enabled=False,
        run_background_tasks=False,
    )


@pytest.fixture
def app(settings, store, notifier, clock):
    # A roomy bucket so only the throttling tests ever hit 429
    limiter = RateLimiter(capacity=100, refill_rate=100.0)
    return create_app(settings, store=store, notifier=notifier, rate_limiter=limiter, clock=clock)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, client=CLIENT_ADDRESS)
