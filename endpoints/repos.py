"""
Endpoint: Repositories — star/fork totals, language distribution and the
top repositories by stars for the signed-in user.
"""

from __future__ import annotations

import logging

import config
from endpoints.common import CachedResult, RequestContext, cached_fetch, payload_etag, resolve_login

log = logging.getLogger(__name__)

TOP_N = 10


async def _list_repos(ctx: RequestContext, login: str) -> list[dict]:
    repos: list[dict] = []
    for page in range(1, config.REPOS_MAX_PAGES + 1):
        batch = await ctx.rest.list_user_repos(login, per_page=config.REPOS_PAGE_SIZE, page=page)
        repos.extend(batch)
        if len(batch) < config.REPOS_PAGE_SIZE:
            break
    return repos


def summarize_repos(repos: list[dict]) -> dict:
    """Aggregate a repository listing into totals and a top-by-stars list."""
    total_stars = 0
    total_forks = 0
    languages: dict[str, int] = {}
    for r in repos:
        total_stars += r.get("stargazers_count") or 0
        total_forks += r.get("forks_count") or 0
        lang = r.get("language") or "Other"
        languages[lang] = languages.get(lang, 0) + 1

    top = sorted(repos, key=lambda r: r.get("stargazers_count") or 0, reverse=True)[:TOP_N]
    return {
        "totals": {
            "repos": len(repos),
            "totalStars": total_stars,
            "totalForks": total_forks,
            "languages": languages,
        },
        "topByStars": [
            {
                "id": r.get("id"),
                "name": r.get("name"),
                "full_name": r.get("full_name"),
                "description": r.get("description"),
                "html_url": r.get("html_url"),
                "language": r.get("language"),
                "stargazers_count": r.get("stargazers_count"),
                "forks_count": r.get("forks_count"),
                "pushed_at": r.get("pushed_at"),
            }
            for r in top
        ],
    }


async def get_repos(ctx: RequestContext) -> CachedResult:
    login = await resolve_login(ctx)

    async def fetch(_prior):
        repos = await _list_repos(ctx, login)
        log.info("Listed %d repos for %s", len(repos), login)
        payload = summarize_repos(repos)
        return payload, payload_etag(payload)

    return await cached_fetch(
        ctx, f"repos:{login}", fetch,
        fresh_ms=config.REPOS_FRESH_MS,
        ttl_ms=config.REPOS_TTL_MS,
    )
