"""
Endpoint: Contributions — contribution calendar, totals and streaks.
"""

from __future__ import annotations

import logging

import config
from endpoints.common import CachedResult, RequestContext, cached_fetch, parse_range, payload_etag, resolve_login
from features.github import compute_streaks, flatten_calendar
from features.github.errors import GraphQLError, NotFound
from features.github.graphql import CONTRIBUTIONS_QUERY

log = logging.getLogger(__name__)


async def get_contributions(
    ctx: RequestContext,
    range_param: str | None = None,
    login: str | None = None,
) -> CachedResult:
    """Calendar for login (default: the signed-in user) over a "<N>d" window."""
    login = login or await resolve_login(ctx)
    date_range = parse_range(range_param, config.DEFAULT_CONTRIBUTIONS_RANGE)
    key = f"contrib:{login}:{date_range.from_iso}:{date_range.to_iso}"

    async def fetch(_prior):
        try:
            data = await ctx.graphql.execute(
                ctx.token, CONTRIBUTIONS_QUERY,
                {"login": login, "from": date_range.from_iso, "to": date_range.to_iso},
            )
        except GraphQLError as e:
            if e.is_not_found:
                raise NotFound(f"No GitHub user {login}") from e
            raise

        user = data.get("user") or {}
        collection = user.get("contributionsCollection") or {}
        calendar = collection.get("contributionCalendar")
        if not calendar:
            raise NotFound(f"No contributions found for {login}")

        days = flatten_calendar(calendar)
        streaks = compute_streaks((d["date"], d["contributionCount"]) for d in days)

        payload = {
            "user": {"login": user.get("login"), "name": user.get("name")},
            "range": date_range.to_dict(),
            "totals": {
                "totalContributions": calendar.get("totalContributions", 0),
                "totalCommits": collection.get("totalCommitContributions", 0),
                "totalIssues": collection.get("totalIssueContributions", 0),
                "totalPRs": collection.get("totalPullRequestContributions", 0),
                "totalReviews": collection.get("totalPullRequestReviewContributions", 0),
                "restricted": collection.get("restrictedContributionsCount", 0),
                "startedAt": collection.get("startedAt"),
                "endedAt": collection.get("endedAt"),
                "years": collection.get("contributionYears", []),
            },
            "streaks": streaks.to_dict(),
            "calendar": {
                "weeks": calendar.get("weeks", []),
                "total": calendar.get("totalContributions", 0),
                "days": days,
            },
        }
        return payload, payload_etag(payload)

    return await cached_fetch(
        ctx, key, fetch,
        fresh_ms=config.CONTRIBUTIONS_FRESH_MS,
        ttl_ms=config.CONTRIBUTIONS_TTL_MS,
    )
