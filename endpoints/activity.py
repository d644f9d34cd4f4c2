"""
Endpoint: Activity — daily pull request / issue / review / commit counts
for the signed-in user over a "<N>d" window.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

import config
from endpoints.common import (
    CachedResult,
    RequestContext,
    cached_fetch,
    days_in_range,
    parse_range,
    payload_etag,
    resolve_login,
)
from features.github import bucket_by_day, collect_all, compute_streaks, merge_buckets

log = logging.getLogger(__name__)


async def get_activity(ctx: RequestContext, range_param: str | None = None) -> CachedResult:
    """
    Returns:
        {
            "user": {"login": ...},
            "range": {"from": ..., "to": ...},
            "totals": {"prs": int, "issues": int, "reviews": int, "commits": int},
            "daily": [{"date": "YYYY-MM-DD", "prs": int, ...}, ...],
            "streaks": {"currentStreak": int, "longestStreak": int},
            "partial": bool
        }
    """
    login = await resolve_login(ctx)
    date_range = parse_range(range_param, config.DEFAULT_ACTIVITY_RANGE)
    key = f"activity:{login}:{date_range.from_iso}:{date_range.to_iso}"

    async def fetch(_prior):
        log.info("Fetching activity for %s (%dd)", login, date_range.days)
        events = await collect_all(
            ctx.graphql, ctx.token, login, date_range.from_iso, date_range.to_iso,
        )

        pr_days = bucket_by_day(events.pull_requests)
        issue_days = bucket_by_day(events.issues)
        review_days = bucket_by_day(events.reviews)
        commit_days = bucket_by_day(events.commits)
        daily = merge_buckets(prs=pr_days, issues=issue_days, reviews=review_days, commits=commit_days)

        per_day = {b.date: b.prs + b.issues + b.reviews + b.commits for b in daily}
        streaks = compute_streaks((d, per_day.get(d, 0)) for d in days_in_range(date_range))

        payload = {
            "user": {"login": login},
            "range": date_range.to_dict(),
            "totals": {
                "prs": len(events.pull_requests),
                "issues": len(events.issues),
                "reviews": len(events.reviews),
                "commits": len(events.commits),
            },
            "daily": [asdict(b) for b in daily],
            "streaks": streaks.to_dict(),
            "partial": events.truncated,
        }
        return payload, payload_etag(payload)

    return await cached_fetch(
        ctx, key, fetch,
        fresh_ms=config.ACTIVITY_FRESH_MS,
        ttl_ms=config.ACTIVITY_TTL_MS,
    )
