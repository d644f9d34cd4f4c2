"""
Endpoint: Pull Requests — PR totals, recent PRs, and average time to merge
for pull requests authored by the signed-in user.
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
    "open": "type:pr author:{login} is:open is:public",
    "merged": "type:pr author:{login} is:merged is:public",
    "reviewed": "type:pr reviewed-by:{login} is:public",
    "recent": "type:pr author:{login} is:public",
}


async def _time_to_merge_ms(ctx: RequestContext, item: dict) -> int | None:
    repo = repo_from(item.get("repository_url"))
    if not repo:
        return None
    pr = await ctx.rest.get_pull(repo[0], repo[1], item["number"])
    if not pr or not pr.get("merged_at") or not pr.get("created_at"):
        return None
    delta = parse_timestamp(pr["merged_at"]) - parse_timestamp(pr["created_at"])
    return int(delta.total_seconds() * 1000)


async def _avg_time_to_merge(ctx: RequestContext, login: str) -> int | None:
    merged = await ctx.rest.search_issues(
        f"type:pr author:{login} is:merged is:public",
        per_page=config.AVG_SAMPLE_SIZE, sort="updated", order="desc",
    )
    items = (merged.data or {}).get("items", [])
    settled = await gather_settled(
        {str(i.get("id")): _time_to_merge_ms(ctx, i) for i in items},
        defaults={},
    )
    return average_ms([ms for ms in settled.values() if ms is not None])


async def get_prs(ctx: RequestContext, section: str | None = None) -> CachedResult:
    """
    Returns, without a section:
        {"totals": {"total", "open", "merged", "reviewed", "avgTimeToMergeMs"}, "recent": [...]}
    With section in SECTIONS:
        {"section", "items", "total", "page"}
    """
    if section and section not in SECTIONS:
        raise InvalidParameter(f"Unknown section: {section}")

    login = await resolve_login(ctx)

    if section:
        query = SECTIONS[section].format(login=login)
        return await cached_fetch(
            ctx, f"prs:{login}:{section}",
            lambda _prior: search_section(ctx, section, query),
            fresh_ms=config.PRS_FRESH_MS,
            ttl_ms=config.PRS_TTL_MS,
        )

    async def fetch(prior):
        base = f"type:pr author:{login} is:public"
        total, open_, merged, reviewed, recent = await gather_all(
            ctx.rest.search_issues(base, per_page=1, etag=prior.etag if prior else None),
            ctx.rest.search_issues(SECTIONS["open"].format(login=login), per_page=1),
            ctx.rest.search_issues(SECTIONS["merged"].format(login=login), per_page=1),
            ctx.rest.search_issues(SECTIONS["reviewed"].format(login=login), per_page=1),
            ctx.rest.search_issues(base, per_page=config.RECENT_ITEMS, sort="updated", order="desc"),
        )
        if total.not_modified and prior is not None:
            log.info("PRs for %s not modified upstream, reusing cached payload", login)
            return prior

        optional = await gather_settled(
            {"avg": _avg_time_to_merge(ctx, login)},
            defaults={"avg": None},
        )
        payload = {
            "totals": {
                "total": total.data.get("total_count", 0),
                "open": open_.data.get("total_count", 0),
                "merged": merged.data.get("total_count", 0),
                "reviewed": reviewed.data.get("total_count", 0),
                "avgTimeToMergeMs": optional["avg"],
            },
            "recent": [summarize_item(i) for i in recent.data.get("items", [])],
        }
        return payload, total.etag

    return await cached_fetch(
        ctx, f"prs:{login}", fetch,
        fresh_ms=config.PRS_FRESH_MS,
        ttl_ms=config.PRS_TTL_MS,
    )
