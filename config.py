"""
Configuration — loads settings from environment / .env file.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# GitHub upstream
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_GRAPHQL_URL = os.getenv("GITHUB_GRAPHQL_URL", "https://api.github.com/graphql")
GITHUB_API_VERSION = os.getenv("GITHUB_API_VERSION", "2022-11-28")
GITHUB_USER_AGENT = "github-insights/0.1.0"

# Fail fast when upstream is slow (usually a sign of rate limiting)
GITHUB_TIMEOUT_SEC = float(os.getenv("GITHUB_TIMEOUT_SEC", "10"))

# Bounded retry on primary rate limits / 5xx
GITHUB_MAX_RETRIES = int(os.getenv("GITHUB_MAX_RETRIES", "2"))

# Server-requested waits longer than this fail the request instead of blocking
GITHUB_MAX_RETRY_DELAY_SEC = float(os.getenv("GITHUB_MAX_RETRY_DELAY_SEC", "60"))

# Activity pagination
ACTIVITY_MAX_ROUNDS = int(os.getenv("ACTIVITY_MAX_ROUNDS", "20"))
ACTIVITY_PAGE_SIZE = 100
ACTIVITY_MAX_REPOSITORIES = 20

# Credential store (optional — without it only bearer-header tokens work)
DATABASE_URL = os.getenv("DATABASE_URL", "")

# Cache windows (milliseconds).
#   TTL   — how long a payload may be served at all (stale-on-error included)
#   FRESH — how long a payload is served without touching upstream
MINUTE_MS = 60 * 1000

ACTIVITY_TTL_MS = 60 * MINUTE_MS
ACTIVITY_FRESH_MS = 15 * MINUTE_MS

CONTRIBUTIONS_TTL_MS = 60 * MINUTE_MS
CONTRIBUTIONS_FRESH_MS = 15 * MINUTE_MS

ISSUES_TTL_MS = 30 * MINUTE_MS
ISSUES_FRESH_MS = 5 * MINUTE_MS

PRS_TTL_MS = 30 * MINUTE_MS
PRS_FRESH_MS = 5 * MINUTE_MS

PROFILE_TTL_MS = 10 * MINUTE_MS
PROFILE_FRESH_MS = 10 * MINUTE_MS

REPOS_TTL_MS = 60 * MINUTE_MS
REPOS_FRESH_MS = 10 * MINUTE_MS

# Default query windows
DEFAULT_ACTIVITY_RANGE = "90d"
DEFAULT_CONTRIBUTIONS_RANGE = "365d"

# Repo listing: 4 pages x 50 = 200 repos max
REPOS_PAGE_SIZE = 50
REPOS_MAX_PAGES = 4

# Sample sizes for derived averages
AVG_SAMPLE_SIZE = 20
RECENT_ITEMS = 10
