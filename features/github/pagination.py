"""
Pagination aggregator — drives the activity connections to exhaustion.

Three cursor-paginated connections (pull requests, issues, reviews) advance
independently, but share one GraphQL query per round. Commit contributions
are nested inside a bounded repository list and only their first page is
read, in the first round, to bound cost.
"""

from __future__ import annotations

import logging

import config
from features.github.graphql import ACTIVITY_QUERY, GraphQLRunner
from models.schemas import ContributionEvents, CursorSet

log = logging.getLogger(__name__)

# (connection field, ContributionEvents attribute, CursorSet attribute)
CONNECTIONS = [
    ("pullRequestContributions", "pull_requests", "pr_cursor"),
    ("issueContributions", "issues", "issue_cursor"),
    ("pullRequestReviewContributions", "reviews", "review_cursor"),
]


def _occurred_at(connection: dict | None) -> list[str]:
    if not connection:
        return []
    return [n["occurredAt"] for n in connection.get("nodes") or [] if n and n.get("occurredAt")]


async def collect_all(
    runner: GraphQLRunner,
    access_token: str,
    login: str,
    from_iso: str,
    to_iso: str,
    max_rounds: int | None = None,
) -> ContributionEvents:
    """
    Gather every contribution timestamp for login in [from_iso, to_iso].

    Stops once no connection reports hasNextPage, or after max_rounds.
    Hitting the cap returns what was gathered with truncated=True.
    """
    max_rounds = max_rounds or config.ACTIVITY_MAX_ROUNDS
    events = ContributionEvents()
    cursors = CursorSet()
    # A connection leaves this set once it reports hasNextPage = false
    open_connections = {field_name for field_name, _, _ in CONNECTIONS}

    while events.rounds < max_rounds:
        variables = {
            "login": login,
            "from": from_iso,
            "to": to_iso,
            "pageSize": config.ACTIVITY_PAGE_SIZE,
            "maxRepositories": config.ACTIVITY_MAX_REPOSITORIES,
            "includeCommits": events.rounds == 0,
            "prCursor": cursors.pr_cursor,
            "issueCursor": cursors.issue_cursor,
            "reviewCursor": cursors.review_cursor,
        }
        data = await runner.execute(access_token, ACTIVITY_QUERY, variables)
        events.rounds += 1

        collection = (data.get("user") or {}).get("contributionsCollection")
        if not collection:
            log.info("No contributionsCollection for %s, stopping after %d round(s)", login, events.rounds)
            break

        for field_name, events_attr, cursor_attr in CONNECTIONS:
            if field_name not in open_connections:
                continue
            connection = collection.get(field_name) or {}
            getattr(events, events_attr).extend(_occurred_at(connection))
            page_info = connection.get("pageInfo") or {}
            if page_info.get("hasNextPage") and page_info.get("endCursor"):
                setattr(cursors, cursor_attr, page_info["endCursor"])
            else:
                # Exhausted: the cursor stays put and the connection is skipped
                open_connections.discard(field_name)

        for repo in collection.get("commitContributionsByRepository") or []:
            events.commits.extend(_occurred_at(repo.get("contributions")))

        if not open_connections:
            break
    else:
        events.truncated = bool(open_connections)
        if events.truncated:
            log.warning(
                "Activity pagination for %s hit the %d round cap; results truncated",
                login, max_rounds,
            )

    log.info(
        "Collected activity for %s in %d round(s): prs=%d issues=%d reviews=%d commits=%d",
        login, events.rounds, len(events.pull_requests), len(events.issues),
        len(events.reviews), len(events.commits),
    )
    return events
