"""
FastAPI application — JSON API for GitHub Insights.

Endpoints:
  GET /api/github/activity       — daily PR/issue/review/commit counts (?range=90d)
  GET /api/github/contributions  — contribution calendar + streaks (?range=365d&login=)
  GET /api/github/issues         — issue totals / sections (?section=open|closed|recent)
  GET /api/github/prs            — pull request totals / sections (?section=open|merged|reviewed|recent)
  GET /api/github/me             — profile, email, orgs, events, recent PRs
  GET /api/github/repos          — repo totals, languages, top by stars
  GET /health                    — Health check
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

import httpx
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

import config
from endpoints.activity import get_activity
from endpoints.common import CachedResult, CacheStatus, InvalidParameter, RequestContext
from endpoints.contributions import get_contributions
from endpoints.issues import get_issues
from endpoints.profile import get_profile
from endpoints.prs import get_prs
from endpoints.repos import get_repos
from features.auth import db as token_db
from features.auth import resolve_credential
from features.cache import ResponseCache
from features.github import GraphQLRunner, RestClient, build_http_client
from features.github.errors import GitHubError, GraphQLError, RateLimited

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    service: str
    cache_entries: int
    credential_store: bool


def create_app(
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], int] | None = None,
) -> FastAPI:
    """Build the app. transport and clock are injectable for tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.cache = ResponseCache(clock=clock)
        app.state.http = build_http_client(transport)
        app.state.graphql = GraphQLRunner(app.state.http)
        if token_db.is_configured():
            log.info("Credential store enabled (Postgres)")
        else:
            log.info("No DATABASE_URL — only bearer-token auth is available")
        try:
            yield
        finally:
            await app.state.http.aclose()
            token_db.close()

    app = FastAPI(
        title="GitHub Insights",
        description="Aggregated personal GitHub activity with cached, rate-limit aware upstream access",
        version="0.1.0",
        lifespan=lifespan,
    )
    _register_error_handlers(app)
    _register_routes(app)
    return app


# ── Dependencies ──────────────────────────────────────────────────────

async def request_context(
    request: Request,
    authorization: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> RequestContext:
    credential = await resolve_credential(authorization, x_user_id)
    state = request.app.state
    return RequestContext(
        cache=state.cache,
        rest=RestClient(state.http, credential.access_token),
        graphql=state.graphql,
        credential=credential,
    )


def _respond(request: Request, result: CachedResult, expose_etag: bool = False) -> Response:
    headers = {"X-Cache": result.status.value}
    if expose_etag and result.etag:
        headers["ETag"] = result.etag
        if request.headers.get("if-none-match") == result.etag and result.status != CacheStatus.STALE:
            return Response(status_code=304, headers=headers)
    return JSONResponse(result.data, headers=headers)


# ── Error mapping ─────────────────────────────────────────────────────

def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(GitHubError)
    async def github_error(request: Request, exc: GitHubError):
        if isinstance(exc, GraphQLError):
            log.error("%s %s failed: GraphQL errors %s", request.method, request.url.path, exc.errors)
        elif exc.http_status >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            log.info("%s %s -> %d: %s", request.method, request.url.path, exc.http_status, exc)

        headers = {}
        if isinstance(exc, RateLimited) and exc.retry_after:
            headers["Retry-After"] = str(int(exc.retry_after))
        return JSONResponse({"error": exc.public_message}, status_code=exc.http_status, headers=headers)

    @app.exception_handler(InvalidParameter)
    async def invalid_parameter(request: Request, exc: InvalidParameter):
        return JSONResponse({"error": str(exc)}, status_code=400)


# ── Routes ────────────────────────────────────────────────────────────

def _register_routes(app: FastAPI) -> None:

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request):
        return HealthResponse(
            status="ok",
            service="github-insights",
            cache_entries=len(request.app.state.cache),
            credential_store=token_db.is_configured(),
        )

    @app.get("/api/github/activity")
    async def activity(
        request: Request,
        range_: str | None = Query(default=None, alias="range"),
        ctx: RequestContext = Depends(request_context),
    ):
        """Daily activity over a "<N>d" window (default 90d)."""
        return _respond(request, await get_activity(ctx, range_), expose_etag=True)

    @app.get("/api/github/contributions")
    async def contributions(
        request: Request,
        range_: str | None = Query(default=None, alias="range"),
        login: str | None = None,
        ctx: RequestContext = Depends(request_context),
    ):
        """Contribution calendar and streaks (default 365d)."""
        return _respond(request, await get_contributions(ctx, range_, login), expose_etag=True)

    @app.get("/api/github/issues")
    async def issues(request: Request, section: str | None = None, ctx: RequestContext = Depends(request_context)):
        return _respond(request, await get_issues(ctx, section))

    @app.get("/api/github/prs")
    async def prs(request: Request, section: str | None = None, ctx: RequestContext = Depends(request_context)):
        return _respond(request, await get_prs(ctx, section))

    @app.get("/api/github/me")
    async def me(request: Request, ctx: RequestContext = Depends(request_context)):
        return _respond(request, await get_profile(ctx))

    @app.get("/api/github/repos")
    async def repos(request: Request, ctx: RequestContext = Depends(request_context)):
        return _respond(request, await get_repos(ctx), expose_etag=True)


app = create_app()
