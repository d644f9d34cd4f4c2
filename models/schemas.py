"""
Data models for the aggregation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EventCategory(str, Enum):
    PULL_REQUEST = "prs"
    ISSUE = "issues"
    REVIEW = "reviews"
    COMMIT = "commits"


@dataclass
class CursorSet:
    """One opaque cursor per paginated connection. None means first page."""
    pr_cursor: str | None = None
    issue_cursor: str | None = None
    review_cursor: str | None = None


@dataclass
class ContributionEvents:
    """occurredAt timestamps gathered by one pagination pass."""
    pull_requests: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    reviews: list[str] = field(default_factory=list)
    commits: list[str] = field(default_factory=list)
    rounds: int = 0
    truncated: bool = False  # round cap hit while a connection still had pages


@dataclass
class DailyBucket:
    date: str  # YYYY-MM-DD (UTC)
    prs: int = 0
    issues: int = 0
    reviews: int = 0
    commits: int = 0


@dataclass
class StreakRecord:
    current_streak: int = 0
    longest_streak: int = 0

    def to_dict(self) -> dict:
        return {"currentStreak": self.current_streak, "longestStreak": self.longest_streak}


@dataclass
class DateRange:
    """A query window, both ends at 00:00:00 UTC."""
    from_iso: str
    to_iso: str
    days: int

    def to_dict(self) -> dict:
        return {"from": self.from_iso, "to": self.to_iso}
