from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import pytest

from features.auth import db as token_db
from features.auth import resolve_credential
from features.github.errors import Unauthenticated


def test_bearer_header_is_used_directly() -> None:
    cred = asyncio.run(resolve_credential("Bearer gho_abc", None))
    assert cred.access_token == "gho_abc"
    assert cred.source == "header"
    assert "gho_abc" not in repr(cred)


def test_no_header_no_session_is_unauthenticated() -> None:
    with pytest.raises(Unauthenticated):
        asyncio.run(resolve_credential(None, None))


def test_non_bearer_scheme_ignored() -> None:
    with pytest.raises(Unauthenticated):
        asyncio.run(resolve_credential("Basic Zm9vOmJhcg==", None))


def test_session_user_without_store_is_unauthenticated(monkeypatch) -> None:
    monkeypatch.setattr(token_db, "is_configured", lambda: False)
    with pytest.raises(Unauthenticated):
        asyncio.run(resolve_credential(None, "user-1"))


def test_session_user_resolved_from_store(monkeypatch) -> None:
    monkeypatch.setattr(token_db, "is_configured", lambda: True)
    monkeypatch.setattr(token_db, "get_github_token", lambda user_id: f"tok-for-{user_id}")

    cred = asyncio.run(resolve_credential(None, "user-1"))

    assert cred.access_token == "tok-for-user-1"
    assert cred.user_id == "user-1"
    assert cred.source == "store"


def test_expired_or_missing_stored_token(monkeypatch) -> None:
    monkeypatch.setattr(token_db, "is_configured", lambda: True)
    monkeypatch.setattr(token_db, "get_github_token", lambda user_id: None)

    with pytest.raises(Unauthenticated):
        asyncio.run(resolve_credential(None, "user-1"))


def test_store_failure_is_unauthenticated(monkeypatch) -> None:
    def broken(user_id):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(token_db, "is_configured", lambda: True)
    monkeypatch.setattr(token_db, "get_github_token", broken)

    with pytest.raises(Unauthenticated):
        asyncio.run(resolve_credential(None, "user-1"))


class _FakeCursor:
    def __init__(self, row):
        self.row = row

    def execute(self, sql, params):
        self.params = params

    def fetchone(self):
        return self.row


def _patch_cursor(monkeypatch, row):
    @contextmanager
    def fake_cursor():
        yield _FakeCursor(row)

    monkeypatch.setattr(token_db, "get_cursor", fake_cursor)


def test_get_github_token_checks_expiry(monkeypatch) -> None:
    _patch_cursor(monkeypatch, {"access_token": "tok", "expires_at": 1000})
    assert token_db.get_github_token("u", now=999) == "tok"
    assert token_db.get_github_token("u", now=1001) is None


def test_get_github_token_without_expiry(monkeypatch) -> None:
    _patch_cursor(monkeypatch, {"access_token": "tok", "expires_at": None})
    assert token_db.get_github_token("u") == "tok"


def test_get_github_token_missing_row(monkeypatch) -> None:
    _patch_cursor(monkeypatch, None)
    assert token_db.get_github_token("u") is None


def test_concurrent_first_lookups_share_one_connection(monkeypatch) -> None:
    class _Conn:
        closed = False
        autocommit = False

        def close(self):
            self.closed = True

    opened = []
    lock = threading.Lock()

    def slow_connect(dsn):
        time.sleep(0.05)
        conn = _Conn()
        with lock:
            opened.append(conn)
        return conn

    monkeypatch.setattr(token_db.psycopg2, "connect", slow_connect)
    monkeypatch.setattr(token_db, "_pool", [])

    with ThreadPoolExecutor(max_workers=8) as pool:
        conns = list(pool.map(lambda _: token_db._get_conn(), range(8)))

    assert len(opened) == 1
    assert all(c is opened[0] for c in conns)
