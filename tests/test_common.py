from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from endpoints.common import (
    MAX_RANGE_DAYS,
    CacheStatus,
    RequestContext,
    cached_fetch,
    days_in_range,
    parse_range,
    payload_etag,
    repo_from,
)
from features.auth import Credential
from features.cache import ResponseCache
from features.github.errors import TransportError, Unauthenticated

NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)


def test_parse_range_ends_at_start_of_today() -> None:
    r = parse_range("7d", "90d", now=NOW)
    assert r.to_iso == "2024-03-10T00:00:00.000Z"
    assert r.from_iso == "2024-03-03T00:00:00.000Z"
    assert r.days == 7


def test_parse_range_falls_back_to_default() -> None:
    assert parse_range("yesterday", "90d", now=NOW).days == 90
    assert parse_range(None, "365d", now=NOW).days == 365


def test_parse_range_clamps_to_one_day() -> None:
    assert parse_range("0d", "90d", now=NOW).days == 1


def test_parse_range_clamps_huge_windows() -> None:
    r = parse_range("99999999d", "90d", now=NOW)
    assert r.days == MAX_RANGE_DAYS
    assert len(days_in_range(r)) == MAX_RANGE_DAYS


def test_days_in_range_excludes_end_day() -> None:
    days = days_in_range(parse_range("3d", "90d", now=NOW))
    assert days == ["2024-03-07", "2024-03-08", "2024-03-09"]


@pytest.mark.parametrize("url,expected", [
    ("https://api.github.com/repos/octo/hello", ("octo", "hello")),
    ("https://api.github.com/users/octo", None),
    (None, None),
])
def test_repo_from(url, expected) -> None:
    assert repo_from(url) == expected


def test_payload_etag_is_stable_and_weak() -> None:
    a = payload_etag({"b": 1, "a": [1, 2]})
    assert a == payload_etag({"a": [1, 2], "b": 1})
    assert a.startswith('W/"')
    assert a != payload_etag({"a": [1, 2], "b": 2})


# ── cached_fetch ──────────────────────────────────────────────────────

def _ctx(clock) -> RequestContext:
    return RequestContext(cache=ResponseCache(clock=clock), rest=None, graphql=None,
                          credential=Credential(access_token="tok"))


def _run(ctx, fetch, fresh_ms=1000, ttl_ms=5000):
    return asyncio.run(cached_fetch(ctx, "k", fetch, fresh_ms=fresh_ms, ttl_ms=ttl_ms))


def test_cached_fetch_hit_within_fresh_window(clock) -> None:
    ctx = _ctx(clock)
    calls = []

    async def fetch(prior):
        calls.append(prior)
        return {"n": len(calls)}, '"e1"'

    first = _run(ctx, fetch)
    clock.advance(500)
    second = _run(ctx, fetch)

    assert first.status == CacheStatus.MISS
    assert second.status == CacheStatus.HIT
    assert second.data == {"n": 1}
    assert calls == [None]


def test_cached_fetch_passes_prior_entry_when_refreshing(clock) -> None:
    ctx = _ctx(clock)
    seen = []

    async def fetch(prior):
        seen.append(prior.etag if prior else None)
        return {"ok": True}, '"e1"'

    _run(ctx, fetch)
    clock.advance(2000)
    result = _run(ctx, fetch)

    assert result.status == CacheStatus.MISS
    assert seen == [None, '"e1"']


def test_cached_fetch_serves_stale_on_error(clock) -> None:
    ctx = _ctx(clock)

    async def ok(prior):
        return {"v": 1}, None

    async def broken(prior):
        raise TransportError(502, "bad gateway")

    _run(ctx, ok)
    clock.advance(2000)
    result = _run(ctx, broken)

    assert result.status == CacheStatus.STALE
    assert result.data == {"v": 1}


def test_cached_fetch_raises_without_fallback(clock) -> None:
    ctx = _ctx(clock)

    async def broken(prior):
        raise TransportError(502, "bad gateway")

    with pytest.raises(TransportError):
        _run(ctx, broken)


def test_cached_fetch_never_masks_auth_failure(clock) -> None:
    ctx = _ctx(clock)

    async def ok(prior):
        return {"v": 1}, None

    async def revoked(prior):
        raise Unauthenticated("token revoked")

    _run(ctx, ok)
    clock.advance(2000)
    with pytest.raises(Unauthenticated):
        _run(ctx, revoked)


def test_cached_fetch_unchanged_entry_keeps_its_age(clock) -> None:
    ctx = _ctx(clock)
    calls = []

    async def fetch(prior):
        calls.append(prior)
        if prior is not None:
            return prior
        return {"v": len(calls)}, '"e1"'

    _run(ctx, fetch)
    clock.advance(2000)
    unchanged = _run(ctx, fetch)
    clock.advance(3500)  # 5500 ms after the first store: past the 5000 ms TTL
    refetched = _run(ctx, fetch)

    assert unchanged.status == CacheStatus.HIT
    assert unchanged.data == {"v": 1}
    assert refetched.status == CacheStatus.MISS
    assert refetched.data == {"v": 3}
    assert calls[2] is None
