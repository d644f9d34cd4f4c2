"""
Endpoint: Profile — the signed-in user's profile plus primary email,
organizations, recent events and recent pull requests.

The profile itself is mandatory; the other four are optional and fetched
concurrently with it. A failed optional fetch contributes an empty value.
"""

from __future__ import annotations

import logging

import config
from endpoints.common import CachedResult, RequestContext, cached_fetch, resolve_login
from utils.concurrency import gather_all, gather_settled

log = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "login", "name", "avatar_url", "html_url", "bio", "company", "location",
    "blog", "followers", "following", "public_repos", "created_at",
)


def _primary_email(emails: list[dict]) -> str | None:
    for e in emails or []:
        if e.get("primary"):
            return e.get("email")
    return None


async def _recent_prs(ctx: RequestContext, login: str) -> list[dict]:
    resp = await ctx.rest.search_issues(
        f"type:pr author:{login} is:public",
        per_page=config.RECENT_ITEMS, sort="updated", order="desc",
    )
    return (resp.data or {}).get("items", [])


async def get_profile(ctx: RequestContext) -> CachedResult:
    login = await resolve_login(ctx)

    async def fetch(_prior):
        user, optional = await gather_all(
            ctx.rest.get_authenticated_user(),
            gather_settled(
                {
                    "emails": ctx.rest.list_emails(),
                    "orgs": ctx.rest.list_orgs(),
                    "events": ctx.rest.list_events(login),
                    "prs": _recent_prs(ctx, login),
                },
                defaults={"emails": [], "orgs": [], "events": [], "prs": []},
            ),
        )
        profile = {f: user.get(f) for f in PROFILE_FIELDS}
        profile["email"] = _primary_email(optional["emails"])
        payload = {
            "user": profile,
            "orgs": [o.get("login") for o in optional["orgs"] if o.get("login")],
            "events": optional["events"],
            "prs": optional["prs"],
        }
        return payload, None

    return await cached_fetch(
        ctx, f"me:{login}", fetch,
        fresh_ms=config.PROFILE_FRESH_MS,
        ttl_ms=config.PROFILE_TTL_MS,
    )
