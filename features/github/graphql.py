"""
GitHub GraphQL query runner and the query documents the endpoints use.
"""

from __future__ import annotations

import logging

import httpx

import config
from features.github.errors import EmptyResponseError, GraphQLError, TransportError

log = logging.getLogger(__name__)


class GraphQLRunner:
    """Posts {query, variables} to the GraphQL endpoint.

    No retry here: retry policy belongs to the caller.
    """

    def __init__(self, http: httpx.AsyncClient, endpoint: str | None = None):
        self._http = http
        self.endpoint = endpoint or config.GITHUB_GRAPHQL_URL

    async def execute(self, access_token: str, query: str, variables: dict | None = None) -> dict:
        """Run one query and return its data object.

        Raises:
            TransportError: non-2xx status, or the request never completed
            GraphQLError: HTTP 200 with an errors array
            EmptyResponseError: HTTP 200 with neither data nor errors
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            # Responses are per-token and time-sensitive
            "Cache-Control": "no-store",
        }
        try:
            resp = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers=headers,
            )
        except httpx.HTTPError as e:
            log.error("GraphQL request to %s failed: %s", self.endpoint, e)
            raise TransportError(None, str(e), self.endpoint) from e

        if not resp.is_success:
            log.error("GraphQL request failed: status=%d", resp.status_code)
            raise TransportError(resp.status_code, resp.text, self.endpoint)

        try:
            payload = resp.json()
        except ValueError as e:
            log.error("GraphQL response from %s was not JSON (status=%d)", self.endpoint, resp.status_code)
            raise TransportError(resp.status_code, resp.text, self.endpoint) from e
        if not isinstance(payload, dict):
            raise TransportError(resp.status_code, resp.text, self.endpoint)
        if payload.get("errors"):
            log.error("GraphQL errors: %s", payload["errors"])
            raise GraphQLError(payload["errors"])
        if not payload.get("data"):
            raise EmptyResponseError()
        return payload["data"]


# ── Query documents ───────────────────────────────────────────────────

CONTRIBUTIONS_QUERY = """
query Contributions($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    login
    name
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            color
            contributionCount
            date
            weekday
          }
          firstDay
        }
      }
      contributionYears
      totalCommitContributions
      totalIssueContributions
      totalPullRequestContributions
      totalPullRequestReviewContributions
      restrictedContributionsCount
      startedAt
      endedAt
    }
  }
}
"""

ACTIVITY_QUERY = """
query Activity(
  $login: String!,
  $from: DateTime!,
  $to: DateTime!,
  $pageSize: Int!,
  $maxRepositories: Int!,
  $includeCommits: Boolean!,
  $prCursor: String,
  $issueCursor: String,
  $reviewCursor: String
) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      pullRequestContributions(first: $pageSize, after: $prCursor) {
        nodes { occurredAt }
        pageInfo { hasNextPage endCursor }
      }
      issueContributions(first: $pageSize, after: $issueCursor) {
        nodes { occurredAt }
        pageInfo { hasNextPage endCursor }
      }
      pullRequestReviewContributions(first: $pageSize, after: $reviewCursor) {
        nodes { occurredAt }
        pageInfo { hasNextPage endCursor }
      }
      commitContributionsByRepository(maxRepositories: $maxRepositories) @include(if: $includeCommits) {
        repository { nameWithOwner }
        contributions(first: $pageSize) {
          nodes { occurredAt }
          pageInfo { hasNextPage endCursor }
        }
      }
    }
  }
}
"""
