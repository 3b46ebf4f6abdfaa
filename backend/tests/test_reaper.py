from __future__ import annotations

import time
from datetime import timedelta

import pytest

from vaultdrop.core.errors import BackendUnavailableError, NotFoundError
from vaultdrop.core.message import Message
from vaultdrop.services.reaper import Reaper

TTL = timedelta(days=30)


@pytest.fixture
def reaper(store, clock) -> Reaper:
    return Reaper(store, ttl=TTL, interval_seconds=0.01, clock=clock)


def test_message_readable_just_before_ttl(lifecycle, reaper, clock):
    lifecycle.create(Message(handle="t1", payload="p"))
    clock.advance(days=30, seconds=-1)

    assert reaper.run_once().purged == 0
    assert lifecycle.consume("t1").payload == "p"


def test_message_gone_after_sweep_past_ttl(lifecycle, reaper, clock):
    lifecycle.create(Message(handle="t1", payload="p"))
    clock.advance(days=30, seconds=1)

    stats = reaper.run_once()
    assert stats.purged == 1
    assert not stats.failed
    assert stats.cutoff == clock.now - TTL
    with pytest.raises(NotFoundError):
        lifecycle.consume("t1")


def test_sweep_only_purges_stale_messages(lifecycle, reaper, clock):
    lifecycle.create(Message(handle="old", payload="p"))
    clock.advance(days=20)
    lifecycle.create(Message(handle="young", payload="p"))
    clock.advance(days=11)

    assert reaper.run_once().purged == 1
    assert reaper.last_stats.purged == 1
    assert lifecycle.consume("young").payload == "p"


def test_backend_errors_are_contained(clock):
    class BrokenStore:
        def delete_older_than(self, cutoff):
            raise BackendUnavailableError("db down")

    stats = Reaper(BrokenStore(), clock=clock).run_once()
    assert stats.failed
    assert stats.purged == 0


def test_scheduled_sweeps_keep_running_after_failure(clock):
    class FlakyStore:
        def __init__(self):
            self.calls = 0

        def delete_older_than(self, cutoff):
            self.calls += 1
            if self.calls == 1:
                raise BackendUnavailableError("transient")
            return 0

    store = FlakyStore()
    reaper = Reaper(store, interval_seconds=0.01, clock=clock)
    reaper.start()
    try:
        deadline = time.monotonic() + 2
        while store.calls < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        assert reaper.stop(timeout=2)

    assert store.calls >= 3
    assert not reaper.last_stats.failed


def test_stop_without_start_is_noop(reaper):
    assert reaper.stop(timeout=0.1)
