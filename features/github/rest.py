"""
GitHub REST client wrapper.

Wraps a shared httpx.AsyncClient with:
  - a request timeout, so a rate-limited upstream fails fast instead of hanging
  - bounded retry on primary rate limits, waiting the server-specified delay
  - no retry on secondary (abuse-detection) limits: the caller degrades instead
  - no retry on definitive client errors (401, 404, 422, ...)
  - conditional requests via If-None-Match / ETag
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

import config
from features.github.errors import NotFound, RateLimited, TransportError, Unauthenticated

log = logging.getLogger(__name__)

SECONDARY_MARKERS = ("secondary rate limit", "abuse")
DEFAULT_SECONDARY_WAIT_SEC = 60.0


def build_http_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create the process-wide HTTP client shared by the REST and GraphQL paths."""
    return httpx.AsyncClient(
        base_url=config.GITHUB_API_URL,
        headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": config.GITHUB_API_VERSION,
            "User-Agent": config.GITHUB_USER_AGENT,
        },
        timeout=config.GITHUB_TIMEOUT_SEC,
        transport=transport,
    )


@dataclass
class RestResponse:
    data: Any
    status: int
    etag: str | None = None
    headers: dict = field(default_factory=dict)
    not_modified: bool = False


def _rate_limit_signal(resp: httpx.Response) -> tuple[bool, float | None] | None:
    """Classify a response as a rate limit.

    Returns (secondary, delay_seconds), or None when the response is not a
    rate-limit signal at all.
    """
    if resp.status_code not in (403, 429):
        return None

    try:
        body = resp.json()
    except ValueError:
        body = None
    message = str(body.get("message", "")) if isinstance(body, dict) else resp.text
    retry_after = resp.headers.get("Retry-After")
    delay = float(retry_after) if retry_after and retry_after.isdigit() else None

    if any(marker in message.lower() for marker in SECONDARY_MARKERS):
        return True, delay if delay is not None else DEFAULT_SECONDARY_WAIT_SEC

    if resp.headers.get("X-RateLimit-Remaining") == "0":
        if delay is None:
            reset = resp.headers.get("X-RateLimit-Reset")
            delay = max(float(reset) - time.time(), 0.0) if reset else DEFAULT_SECONDARY_WAIT_SEC
        return False, delay

    if resp.status_code == 429:
        return False, delay if delay is not None else DEFAULT_SECONDARY_WAIT_SEC

    # Plain 403: permission problem, retrying is futile
    return None


def _error_for(resp: httpx.Response, path: str) -> Exception:
    if resp.status_code == 401:
        return Unauthenticated(f"GitHub rejected the token for {path}")
    if resp.status_code == 404:
        return NotFound(f"GitHub resource not found: {path}")
    return TransportError(resp.status_code, resp.text, path)


class RestClient:
    """Authenticated REST calls for a single access token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        access_token: str,
        max_retries: int | None = None,
        max_retry_delay: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._http = http
        self._token = access_token
        self.max_retries = config.GITHUB_MAX_RETRIES if max_retries is None else max_retries
        self.max_retry_delay = config.GITHUB_MAX_RETRY_DELAY_SEC if max_retry_delay is None else max_retry_delay
        self._sleep = sleep

    async def get(self, path: str, params: dict | None = None, etag: str | None = None) -> RestResponse:
        """GET a REST path, retrying on primary rate limits and 5xx.

        Raises:
            RateLimited: secondary limit, or primary limit after retries
            Unauthenticated / NotFound / TransportError: definitive failures
        """
        headers = {"Authorization": f"Bearer {self._token}"}
        if etag:
            headers["If-None-Match"] = etag

        for attempt in range(self.max_retries + 1):
            try:
                resp = await self._http.get(path, params=params, headers=headers)
            except httpx.TimeoutException as e:
                log.error("GitHub GET %s timed out", path)
                raise TransportError(None, "request timed out", path) from e
            except httpx.HTTPError as e:
                log.error("GitHub GET %s failed: %s", path, e)
                raise TransportError(None, str(e), path) from e

            if resp.status_code == 304:
                return RestResponse(data=None, status=304, etag=etag, not_modified=True)

            if resp.is_success:
                try:
                    data = resp.json() if resp.content else None
                except ValueError as e:
                    log.error("GitHub GET %s returned a non-JSON body (status=%d)", path, resp.status_code)
                    raise TransportError(resp.status_code, resp.text, path) from e
                return RestResponse(
                    data=data,
                    status=resp.status_code,
                    etag=resp.headers.get("ETag"),
                    headers=dict(resp.headers),
                )

            limit = _rate_limit_signal(resp)
            if limit is not None:
                secondary, delay = limit
                if secondary:
                    log.warning("Secondary rate limit on %s, not retrying", path)
                    raise RateLimited(delay, secondary=True, url=path)
                if attempt >= self.max_retries or (delay or 0) > self.max_retry_delay:
                    log.warning("Rate limit on %s exhausted retries (delay %.0fs)", path, delay or 0)
                    raise RateLimited(delay, url=path)
                log.warning(
                    "Rate limited (attempt %d/%d), retrying in %.0fs: %s",
                    attempt + 1, self.max_retries, delay or 0, path,
                )
                await self._sleep(delay or 0)
                continue

            if resp.status_code >= 500 and attempt < self.max_retries:
                delay = float((attempt + 1) ** 2)
                log.warning(
                    "GitHub %d on %s (attempt %d/%d), retrying in %.0fs",
                    resp.status_code, path, attempt + 1, self.max_retries, delay,
                )
                await self._sleep(delay)
                continue

            raise _error_for(resp, path)

        raise TransportError(None, "retries exhausted", path)  # unreachable

    # ── Users ─────────────────────────────────────────────────────────

    async def get_authenticated_user(self) -> dict:
        return (await self.get("/user")).data

    async def list_emails(self) -> list[dict]:
        return (await self.get("/user/emails")).data or []

    async def list_orgs(self) -> list[dict]:
        return (await self.get("/user/orgs", params={"per_page": 100})).data or []

    async def list_events(self, login: str, per_page: int = 20) -> list[dict]:
        return (await self.get(f"/users/{login}/events", params={"per_page": per_page})).data or []

    # ── Search / issues / pulls ───────────────────────────────────────

    async def search_issues(
        self,
        q: str,
        per_page: int = 1,
        page: int = 1,
        sort: str | None = None,
        order: str | None = None,
        etag: str | None = None,
    ) -> RestResponse:
        params: dict = {"q": q, "per_page": per_page, "page": page}
        if sort:
            params["sort"] = sort
        if order:
            params["order"] = order
        return await self.get("/search/issues", params=params, etag=etag)

    async def list_issue_comments(self, owner: str, repo: str, number: int, per_page: int = 10) -> list[dict]:
        path = f"/repos/{owner}/{repo}/issues/{number}/comments"
        return (await self.get(path, params={"per_page": per_page})).data or []

    async def get_pull(self, owner: str, repo: str, number: int) -> dict:
        return (await self.get(f"/repos/{owner}/{repo}/pulls/{number}")).data

    # ── Repositories ──────────────────────────────────────────────────

    async def list_user_repos(self, login: str, per_page: int = 50, page: int = 1, sort: str = "updated") -> list[dict]:
        params = {"per_page": per_page, "page": page, "sort": sort}
        return (await self.get(f"/users/{login}/repos", params=params)).data or []
