"""
Endpoint: Issues — issue totals, recent issues, and average time to first
response for issues authored by the signed-in user.
"""

from __future__ import annotations

import logging

import config
from endpoints.common import (
    CachedResult,
    InvalidParameter,
    RequestContext,
    average_ms,
    cached_fetch,
    parse_timestamp,
    repo_from,
    resolve_login,
    search_section,
    summarize_item,
)
from utils.concurrency import gather_all, gather_settled

log = logging.getLogger(__name__)

SECTIONS = {
    "open": "type:issue author:{login} is:open is:public",
    "closed": "type:issue author:{login} is:closed is:public",
    "recent": "type:issue author:{login} is:public",
}


async def _first_response_ms(ctx: RequestContext, login: str, item: dict) -> int | None:
    """Time from issue creation to the first comment by someone else."""
    repo = repo_from(item.get("repository_url"))
    if not repo or not item.get("created_at"):
        return None
    comments = await ctx.rest.list_issue_comments(repo[0], repo[1], item["number"])
    for c in comments:
        author = (c.get("user") or {}).get("login")
        if author and author != login:
            delta = parse_timestamp(c["created_at"]) - parse_timestamp(item["created_at"])
            return int(delta.total_seconds() * 1000)
    return None


async def _avg_first_response(ctx: RequestContext, login: str) -> int | None:
    sample = await ctx.rest.search_issues(
        f"type:issue author:{login} is:public",
        per_page=config.AVG_SAMPLE_SIZE, sort="created", order="desc",
    )
    items = (sample.data or {}).get("items", [])
    settled = await gather_settled(
        {str(i.get("id")): _first_response_ms(ctx, login, i) for i in items},
        defaults={},
    )
    return average_ms([ms for ms in settled.values() if ms is not None])


async def get_issues(ctx: RequestContext, section: str | None = None) -> CachedResult:
    """
    Returns, without a section:
        {"totals": {"total", "open", "closed", "avgFirstResponseMs"}, "recent": [...]}
    With section in SECTIONS:
        {"section", "items", "total", "page"}
    """
    if section and section not in SECTIONS:
        raise InvalidParameter(f"Unknown section: {section}")

    login = await resolve_login(ctx)

    if section:
        query = SECTIONS[section].format(login=login)
        return await cached_fetch(
            ctx, f"issues:{login}:{section}",
            lambda _prior: search_section(ctx, section, query, with_labels=True),
            fresh_ms=config.ISSUES_FRESH_MS,
            ttl_ms=config.ISSUES_TTL_MS,
        )

    async def fetch(prior):
        base = f"type:issue author:{login} is:public"
        total, open_, closed, recent = await gather_all(
            # Only the first search is conditional; a 304 means nothing changed
            ctx.rest.search_issues(base, per_page=1, etag=prior.etag if prior else None),
            ctx.rest.search_issues(f"type:issue author:{login} is:open is:public", per_page=1),
            ctx.rest.search_issues(f"type:issue author:{login} is:closed is:public", per_page=1),
            ctx.rest.search_issues(base, per_page=config.RECENT_ITEMS, sort="updated", order="desc"),
        )
        if total.not_modified and prior is not None:
            log.info("Issues for %s not modified upstream, reusing cached payload", login)
            return prior

        optional = await gather_settled(
            {"avg": _avg_first_response(ctx, login)},
            defaults={"avg": None},
        )
        payload = {
            "totals": {
                "total": total.data.get("total_count", 0),
                "open": open_.data.get("total_count", 0),
                "closed": closed.data.get("total_count", 0),
                "avgFirstResponseMs": optional["avg"],
            },
            "recent": [summarize_item(i, with_labels=True) for i in recent.data.get("items", [])],
        }
        return payload, total.etag

    return await cached_fetch(
        ctx, f"issues:{login}", fetch,
        fresh_ms=config.ISSUES_FRESH_MS,
        ttl_ms=config.ISSUES_TTL_MS,
    )
