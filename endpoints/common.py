"""
Shared plumbing for the aggregation endpoints: request context, identity,
range parsing, and the cache-or-fetch flow with stale fallback.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from features.auth import Credential
from features.cache import CacheEntry, ResponseCache
from features.github import GraphQLRunner, RestClient
from features.github.errors import GitHubError, Unauthenticated
from models.schemas import DateRange

log = logging.getLogger(__name__)

RANGE_RE = re.compile(r"(\d+)d")
MAX_RANGE_DAYS = 3650
IDENTITY_TTL_MS = 10 * 60 * 1000


class InvalidParameter(ValueError):
    """A query parameter the endpoint cannot serve."""


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"
    STALE = "STALE"


@dataclass
class RequestContext:
    """Everything an endpoint needs to serve one caller."""
    cache: ResponseCache
    rest: RestClient
    graphql: GraphQLRunner
    credential: Credential

    @property
    def token(self) -> str:
        return self.credential.access_token


@dataclass
class CachedResult:
    data: Any
    status: CacheStatus
    etag: str | None = None


# Fetchers receive the previous entry (fresh or not) so they can send
# conditional requests, and return (payload, etag). Returning the previous
# entry itself means upstream reported it unchanged: it is served as-is and
# keeps its original fetched_at, so its TTL still forces a full refetch.
Fetcher = Callable[[CacheEntry | None], Awaitable[tuple[Any, str | None] | CacheEntry]]


async def cached_fetch(
    ctx: RequestContext,
    key: str,
    fetch: Fetcher,
    fresh_ms: int,
    ttl_ms: int,
) -> CachedResult:
    """
    Serve key from cache while fresh; otherwise fetch, store and return.

    If the fetch fails and a stale entry (past fresh_ms, inside ttl_ms) is
    still held, the stale payload is served instead of the error.
    """
    entry = ctx.cache.get(key)
    if entry is not None and ctx.cache.age_ms(entry) < fresh_ms:
        log.debug("Cache hit: %s", key)
        return CachedResult(entry.data, CacheStatus.HIT, entry.etag)

    try:
        result = await fetch(entry)
    except Unauthenticated:
        raise
    except GitHubError as e:
        if entry is None:
            log.error("Fetch for %s failed with no cached fallback: %s", key, e)
            raise
        log.warning("Fetch for %s failed, serving stale payload: %s", key, e)
        return CachedResult(entry.data, CacheStatus.STALE, entry.etag)

    if entry is not None and result is entry:
        log.debug("Upstream unchanged for %s, serving cached payload", key)
        return CachedResult(entry.data, CacheStatus.HIT, entry.etag)

    data, etag = result
    ctx.cache.set(key, data, etag=etag, ttl_ms=ttl_ms)
    return CachedResult(data, CacheStatus.MISS, etag)


def payload_etag(payload: Any) -> str:
    """A weak validator derived from the payload itself."""
    digest = hashlib.sha1(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()
    return f'W/"{digest[:20]}"'


# ── Identity ──────────────────────────────────────────────────────────

async def resolve_login(ctx: RequestContext) -> str:
    """Return the authenticated user's login, caching it per token."""
    key = "identity:" + hashlib.sha256(ctx.token.encode()).hexdigest()[:24]
    entry = ctx.cache.get(key)
    if entry is not None:
        return entry.data

    me = await ctx.rest.get_authenticated_user()
    login = (me or {}).get("login")
    if not login:
        raise Unauthenticated("GitHub returned no login for token")
    ctx.cache.set(key, login, ttl_ms=IDENTITY_TTL_MS)
    return login


# ── Ranges / dates ────────────────────────────────────────────────────

def _start_of_day(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def parse_range(value: str | None, default: str, now: datetime | None = None) -> DateRange:
    """Resolve a "<N>d" window ending at today 00:00 UTC.

    Unparseable values fall back to default; N is clamped to [1, MAX_RANGE_DAYS].
    """
    match = RANGE_RE.search(value or "") or RANGE_RE.search(default)
    days = min(MAX_RANGE_DAYS, max(1, int(match.group(1)))) if match else 90
    now = now or datetime.now(timezone.utc)
    to_dt = _start_of_day(now)
    from_dt = to_dt - timedelta(days=days)
    return DateRange(from_iso=_iso(from_dt), to_iso=_iso(to_dt), days=days)


def days_in_range(date_range: DateRange) -> list[str]:
    """Every UTC day the range covers: its first day up to, not including, its end day."""
    start = date.fromisoformat(date_range.from_iso[:10])
    end = date.fromisoformat(date_range.to_iso[:10])
    return [(start + timedelta(days=i)).isoformat() for i in range((end - start).days)]


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def repo_from(repository_url: str | None) -> tuple[str, str] | None:
    """Split an API repository_url into (owner, repo)."""
    if not repository_url or "/repos/" not in repository_url:
        return None
    parts = repository_url.split("/repos/", 1)[1].split("/")
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def summarize_item(item: dict, with_labels: bool = False) -> dict:
    """Trim a search result to the fields the UI lists."""
    out = {
        "id": item.get("id"),
        "number": item.get("number"),
        "title": item.get("title"),
        "state": item.get("state"),
        "html_url": item.get("html_url"),
        "repository_url": item.get("repository_url"),
        "updated_at": item.get("updated_at"),
    }
    if with_labels:
        out["labels"] = item.get("labels", [])
    return out


def average_ms(durations: list[int]) -> int | None:
    return round(sum(durations) / len(durations)) if durations else None


# ── Search sections ───────────────────────────────────────────────────

SECTION_PAGE_SIZE = 30


async def search_section(ctx: RequestContext, section: str, query: str, with_labels: bool = False) -> tuple[dict, None]:
    """One page of search results for a list section of the UI."""
    resp = await ctx.rest.search_issues(
        query, per_page=SECTION_PAGE_SIZE, sort="updated", order="desc",
    )
    data = resp.data or {}
    payload = {
        "section": section,
        "items": [summarize_item(i, with_labels) for i in data.get("items", [])],
        "total": data.get("total_count", 0),
        "page": 1,
    }
    return payload, None
