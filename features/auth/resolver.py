"""
Credential resolution — turns an inbound request's auth headers into a
GitHub token.

Two modes:
  Authorization: Bearer <token>   — the token is a GitHub token, used as-is
  X-User-Id: <id>                 — session user id set by the session layer;
                                    the token is read from the accounts table
"""

from __future__ import annotations

import asyncio
import logging

from features.auth import db as token_db
from features.auth.models import Credential
from features.github.errors import Unauthenticated

log = logging.getLogger(__name__)


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_credential(authorization: str | None, user_id: str | None) -> Credential:
    """Resolve the caller's GitHub credential or raise Unauthenticated."""
    token = _bearer(authorization)
    if token:
        return Credential(access_token=token, source="header")

    if not user_id:
        raise Unauthenticated("No session")

    if not token_db.is_configured():
        log.warning("X-User-Id given but DATABASE_URL is not set; cannot look up token")
        raise Unauthenticated("No credential store")

    loop = asyncio.get_running_loop()
    try:
        token = await loop.run_in_executor(None, token_db.get_github_token, user_id)
    except Exception as e:
        log.error("Failed to retrieve GitHub token for user %s: %s", user_id, e)
        raise Unauthenticated("Credential store unavailable") from e

    if not token:
        raise Unauthenticated(f"No GitHub token for user {user_id}")
    return Credential(access_token=token, user_id=user_id, source="store")
