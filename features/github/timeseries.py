"""
Time-series helpers — per-day bucketing, multi-category merge, and streaks.

Day keys are UTC calendar dates (YYYY-MM-DD), so results do not depend on
the server's local timezone.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable

from models.schemas import DailyBucket, EventCategory, StreakRecord


def utc_day(timestamp: str) -> str:
    """Return the UTC calendar date of an ISO-8601 timestamp."""
    ts = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).date().isoformat()


def bucket_by_day(events: Iterable[str]) -> dict[str, int]:
    """Count events per UTC day."""
    return dict(Counter(utc_day(ts) for ts in events))


def merge_buckets(
    prs: dict[str, int] | None = None,
    issues: dict[str, int] | None = None,
    reviews: dict[str, int] | None = None,
    commits: dict[str, int] | None = None,
) -> list[DailyBucket]:
    """Merge per-category day maps into one ascending, zero-filled table."""
    maps = {
        EventCategory.PULL_REQUEST: prs or {},
        EventCategory.ISSUE: issues or {},
        EventCategory.REVIEW: reviews or {},
        EventCategory.COMMIT: commits or {},
    }
    days: set[str] = set()
    for m in maps.values():
        days.update(m)

    # YYYY-MM-DD sorts lexicographically in date order
    return [
        DailyBucket(
            date=day,
            **{category.value: counts.get(day, 0) for category, counts in maps.items()},
        )
        for day in sorted(days)
    ]


def compute_streaks(days: Iterable[tuple[str, int]]) -> StreakRecord:
    """
    Streaks over (date, count) pairs.

    current_streak is the run of non-zero days ending at the last entry
    (whatever the caller's last day in range is); longest_streak is the
    longest such run anywhere. A zero day resets the run.
    """
    current = 0
    longest = 0
    for _, count in sorted(days, key=lambda d: d[0]):
        if count > 0:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return StreakRecord(current_streak=current, longest_streak=longest)


def flatten_calendar(calendar: dict) -> list[dict]:
    """Flatten contribution-calendar weeks into a list of day rows."""
    rows = []
    for week in calendar.get("weeks") or []:
        for d in week.get("contributionDays") or []:
            rows.append({
                "date": d["date"],
                "contributionCount": d.get("contributionCount", 0),
                "color": d.get("color"),
                "weekday": d.get("weekday"),
            })
    return rows
