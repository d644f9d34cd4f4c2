"""
Postgres lookup of stored GitHub OAuth tokens.

The session layer (sign-in, OAuth exchange) writes one row per linked
provider account into the accounts table; this module only reads it.

Columns used:
  user_id       — session user id
  provider      — 'github'
  access_token  — OAuth token
  expires_at    — epoch seconds, NULL means no expiry
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any

import psycopg2
import psycopg2.extras

import config

log = logging.getLogger(__name__)

# ── Connection ────────────────────────────────────────────────────────

_pool: list[Any] = []
# Token lookups run on executor threads
_pool_lock = threading.Lock()


def is_configured() -> bool:
    return bool(config.DATABASE_URL)


def _get_conn():
    """Get a Postgres connection (simple single-connection reuse)."""
    with _pool_lock:
        if _pool:
            conn = _pool[0]
            if not conn.closed:
                return conn
            _pool.clear()

        conn = psycopg2.connect(config.DATABASE_URL)
        conn.autocommit = True
        _pool.append(conn)
        return conn


@contextmanager
def get_cursor():
    """Yield a dict cursor."""
    conn = _get_conn()
    cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
    try:
        yield cur
    finally:
        cur.close()


def close() -> None:
    with _pool_lock:
        while _pool:
            _pool.pop().close()


# ── Token lookup ──────────────────────────────────────────────────────

def get_github_token(user_id: str, now: float | None = None) -> str | None:
    """Return the user's GitHub token, or None if missing or expired."""
    with get_cursor() as cur:
        cur.execute(
            "SELECT access_token, expires_at FROM accounts "
            "WHERE user_id = %s AND provider = 'github' LIMIT 1",
            (user_id,),
        )
        row = cur.fetchone()

    if not row or not row.get("access_token"):
        return None

    now = time.time() if now is None else now
    expires_at = row.get("expires_at")
    if expires_at and expires_at < now:
        log.warning("GitHub token expired for user: %s", user_id)
        return None
    return row["access_token"]
