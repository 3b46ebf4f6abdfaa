from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from vaultdrop.config import Settings
from vaultdrop.core.errors import BackendUnavailableError, ConflictError, UnauthorizedError
from vaultdrop.core.message import Message
from vaultdrop.infra import postgres
from vaultdrop.infra.postgres import build_engine
from vaultdrop.infra.store import PersistentStore, SQLMessageStore

T0 = datetime(2026, 1, 1)


def _message(handle: str, created_at: datetime = T0, **kwargs) -> Message:
    return Message(handle=handle, payload=f"payload-{handle}", created_at=created_at, **kwargs)


def test_sql_store_satisfies_protocol(store):
    assert isinstance(store, PersistentStore)


def test_insert_and_take_round_trip(store):
    store.insert(_message("h1", notify_address="a@example.com", reference_label="ref", access_secret="pw"))

    taken = store.take_by_handle("h1")
    assert taken is not None
    assert taken.payload == "payload-h1"
    assert taken.notify_address == "a@example.com"
    assert taken.reference_label == "ref"
    assert taken.access_secret == "pw"
    assert taken.created_at == T0

    assert store.take_by_handle("h1") is None


def test_insert_duplicate_raises_conflict(store):
    store.insert(_message("h1"))
    with pytest.raises(ConflictError):
        store.insert(_message("h1"))


def test_rejected_authorization_leaves_row(store):
    store.insert(_message("h1"))
    with pytest.raises(UnauthorizedError):
        store.take_by_handle("h1", lambda message: False)

    assert store.take_by_handle("h1", lambda message: True) is not None


def test_handle_can_be_reused_after_take(store):
    store.insert(_message("h1"))
    store.take_by_handle("h1")
    store.insert(_message("h1"))
    assert store.take_by_handle("h1") is not None


def test_delete_by_handle_reports_who_removed_it(store):
    store.insert(_message("h1"))
    assert store.delete_by_handle("h1") is True
    assert store.delete_by_handle("h1") is False


def test_delete_older_than_counts_only_stale_rows(store):
    store.insert(_message("old-1", T0 - timedelta(days=40)))
    store.insert(_message("old-2", T0 - timedelta(days=31)))
    store.insert(_message("fresh", T0 - timedelta(days=29)))

    assert store.delete_older_than(T0 - timedelta(days=30)) == 2
    assert store.delete_older_than(T0 - timedelta(days=30)) == 0
    assert store.take_by_handle("fresh") is not None


def test_health_check_passes(store):
    store.health_check()


def test_unreachable_database_maps_to_backend_unavailable(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'vault.db'}")
    store = SQLMessageStore(engine)

    with pytest.raises(BackendUnavailableError):
        store.health_check()
    with pytest.raises(BackendUnavailableError):
        store.insert(_message("h1"))
    with pytest.raises(BackendUnavailableError):
        store.take_by_handle("h1")
    with pytest.raises(BackendUnavailableError):
        store.delete_older_than(T0)


def test_engine_bounds_statement_time(monkeypatch):
    captured = {}

    def fake_create_engine(url, **kwargs):
        captured[url] = kwargs
        return object()

    monkeypatch.setattr(postgres, "create_engine", fake_create_engine)
    postgres.build_engine("sqlite:///vault.db", statement_timeout=12)
    postgres.build_engine("postgresql://vault@db/vault", statement_timeout=2.5)

    assert captured["sqlite:///vault.db"]["connect_args"]["timeout"] == 12
    assert captured["postgresql://vault@db/vault"]["connect_args"] == {"options": "-c statement_timeout=2500"}


def test_request_timeout_setting_from_env(monkeypatch):
    monkeypatch.setenv("VAULTDROP_REQUEST_TIMEOUT_SECONDS", "7")
    assert Settings.from_env().request_timeout_seconds == 7.0
