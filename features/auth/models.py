"""
Data models for the auth feature.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """A caller's identity plus the GitHub token to act on their behalf."""
    access_token: str
    user_id: str | None = None  # session user id, when resolved through the store
    source: str = "header"  # header | store

    def __repr__(self) -> str:
        # Never leak the token into logs
        return f"Credential(user_id={self.user_id!r}, source={self.source!r})"
