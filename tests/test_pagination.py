from __future__ import annotations

import asyncio
import json

import httpx

from features.github import GraphQLRunner, build_http_client, collect_all


def _conn(dates, has_next=False, cursor=None):
    return {
        "nodes": [{"occurredAt": d} for d in dates],
        "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
    }


def _collect(github, **kwargs):
    async def go():
        async with build_http_client(github.transport) as http:
            return await collect_all(
                GraphQLRunner(http), "tok", "octocat",
                "2024-01-01T00:00:00.000Z", "2024-04-01T00:00:00.000Z", **kwargs,
            )
    return asyncio.run(go())


def _graphql(handler):
    def wrapped(request):
        variables = json.loads(request.content)["variables"]
        return httpx.Response(200, json={"data": handler(variables)})
    return wrapped


def test_independent_cursors_two_rounds(github) -> None:
    def handler(v):
        collection = {
            "issueContributions": _conn(["2024-01-05T10:00:00Z"]),
            "pullRequestReviewContributions": _conn([]),
        }
        if v["prCursor"] is None:
            collection["pullRequestContributions"] = _conn(["2024-01-02T10:00:00Z"], True, "pr-1")
        else:
            collection["pullRequestContributions"] = _conn(["2024-01-03T10:00:00Z"])
        if v["includeCommits"]:
            collection["commitContributionsByRepository"] = [
                {"repository": {"nameWithOwner": "o/a"}, "contributions": _conn(["2024-01-02T01:00:00Z"])},
                {"repository": {"nameWithOwner": "o/b"}, "contributions": _conn(["2024-01-04T01:00:00Z"])},
            ]
        return {"user": {"contributionsCollection": collection}}

    github.on("POST", "/graphql", _graphql(handler))

    events = _collect(github)

    bodies = github.graphql_bodies()
    assert len(bodies) == 2
    assert events.rounds == 2
    # PR cursor advanced; issue cursor was exhausted after round 1 and held
    assert bodies[0]["variables"]["prCursor"] is None
    assert bodies[1]["variables"]["prCursor"] == "pr-1"
    assert bodies[1]["variables"]["issueCursor"] is None
    assert bodies[1]["variables"]["reviewCursor"] is None

    assert events.pull_requests == ["2024-01-02T10:00:00Z", "2024-01-03T10:00:00Z"]
    # Exhausted connections are not re-collected
    assert events.issues == ["2024-01-05T10:00:00Z"]
    # Commits are read once, in the first round only
    assert [b["variables"]["includeCommits"] for b in bodies] == [True, False]
    assert len(events.commits) == 2
    assert not events.truncated


def test_round_cap_truncates_without_failing(github) -> None:
    counter = {"n": 0}

    def handler(v):
        counter["n"] += 1
        return {"user": {"contributionsCollection": {
            "pullRequestContributions": _conn(["2024-02-01T00:00:00Z"], True, f"c{counter['n']}"),
            "issueContributions": _conn([]),
            "pullRequestReviewContributions": _conn([]),
        }}}

    github.on("POST", "/graphql", _graphql(handler))

    events = _collect(github, max_rounds=3)

    assert events.rounds == 3
    assert len(github.graphql_bodies()) == 3
    assert len(events.pull_requests) == 3
    assert events.truncated


def test_missing_user_stops(github) -> None:
    github.on("POST", "/graphql", _graphql(lambda v: {"user": None}))

    events = _collect(github)

    assert events.rounds == 1
    assert events.pull_requests == [] and events.commits == []
    assert not events.truncated
