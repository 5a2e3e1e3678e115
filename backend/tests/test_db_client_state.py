"""
Unit-style tests for DBClientStateRegistry using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by DBClientStorage to validate SQL flow
and mapping. No network or external DB required.
"""

from __future__ import annotations

import pytest

from identity_access.domain import Role
from identity_access.stores import Session, SessionStore
from utils.fake_psycopg import install_fake_psycopg


def _session() -> Session:
    return Session(user_id="998", role=Role.ADMINISTRATOR, session_start=5, last_activity=5, token="t")


def test_session_roundtrip_through_db_storage(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    handle = install_fake_psycopg(monkeypatch, mod)
    registry = mod.DBClientStateRegistry(dsn="fake://dsn")
    client_id = registry.new_client_id()
    store = SessionStore(registry.storage_for(client_id))

    store.save(_session())
    loaded = store.load()
    assert loaded is not None
    assert loaded.user_id == "998"
    assert loaded.role is Role.ADMINISTRATOR
    assert handle.rows[(client_id, "isAuthenticated")] == "true"


def test_save_uses_a_single_transaction(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    handle = install_fake_psycopg(monkeypatch, mod)
    registry = mod.DBClientStateRegistry(dsn="fake://dsn")
    SessionStore(registry.storage_for("c1")).save(_session())
    assert handle.connects == 1
    assert handle.log.count("commit") == 1
    assert handle.log.count("insert") == 5


def test_clear_and_forget_remove_rows(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    handle = install_fake_psycopg(monkeypatch, mod)
    registry = mod.DBClientStateRegistry(dsn="fake://dsn")
    store = SessionStore(registry.storage_for("c1"))
    store.save(_session())
    store.clear()
    assert store.load() is None
    assert not any(cid == "c1" for cid, _ in handle.rows)

    store.save(_session())
    registry.forget("c1")
    assert handle.rows == {}


def test_invalid_table_name_is_rejected(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    install_fake_psycopg(monkeypatch, mod)
    with pytest.raises(ValueError):
        mod.DBClientStateRegistry(dsn="fake://dsn", table="bad;drop table")
    assert mod.DBClientStateRegistry(dsn="fake://dsn", table="public.client_state") is not None


def test_missing_dsn_raises_runtime_error(monkeypatch: pytest.MonkeyPatch):
    """DBClientStateRegistry should fail fast when no DSN is provided via arg or env."""
    from identity_access import stores_db as mod

    install_fake_psycopg(monkeypatch, mod)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("SESSION_DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        mod.DBClientStateRegistry()
