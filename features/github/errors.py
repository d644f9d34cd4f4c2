"""
Error taxonomy for upstream GitHub calls.

Every error carries the HTTP status the inbound API should answer with
(http_status) and a message safe to show to the end user (public_message).
"""

from __future__ import annotations

from typing import Any


class GitHubError(Exception):
    http_status = 500
    public_message = "Failed to fetch GitHub data"


class Unauthenticated(GitHubError):
    """No session, or no usable upstream credential."""
    http_status = 401
    public_message = "GitHub access token not found or expired. Please sign in again."


class NotFound(GitHubError):
    http_status = 404
    public_message = "Not found"


class TransportError(GitHubError):
    """Non-2xx from upstream, or the request never completed (status None)."""

    def __init__(self, status: int | None, body: str = "", url: str = ""):
        self.status = status
        self.body = (body or "")[:500]
        self.url = url
        where = f" {url}" if url else ""
        super().__init__(f"GitHub request failed ({status}){where}: {self.body}")


class GraphQLError(GitHubError):
    """HTTP 200, but the payload carried an errors array."""

    def __init__(self, errors: list[Any]):
        self.errors = errors
        first = ""
        if errors and isinstance(errors[0], dict):
            first = errors[0].get("message", "")
        super().__init__(f"GitHub GraphQL returned {len(errors)} error(s): {first}")

    @property
    def is_not_found(self) -> bool:
        return any(isinstance(e, dict) and e.get("type") == "NOT_FOUND" for e in self.errors)


class EmptyResponseError(GitHubError):
    """HTTP 200 with neither data nor errors."""

    def __init__(self):
        super().__init__("GitHub GraphQL returned empty data")


class RateLimited(GitHubError):
    """Primary or secondary (abuse-detection) rate limit."""
    http_status = 503
    public_message = "GitHub rate limit reached. Please try again later."

    def __init__(self, retry_after: float | None = None, secondary: bool = False, url: str = ""):
        self.retry_after = retry_after
        self.secondary = secondary
        self.url = url
        kind = "secondary" if secondary else "primary"
        super().__init__(f"GitHub {kind} rate limit (retry after {retry_after}s) {url}".rstrip())
