"""
Auth feature — resolves the caller's GitHub credential.

Sign-in and OAuth are handled by an external session layer; this feature
only reads what that layer hands over.

Public API:
    from features.auth import Credential, resolve_credential
    from features.auth import db as token_db
"""

from features.auth.models import Credential
from features.auth.resolver import resolve_credential

__all__ = ["Credential", "resolve_credential"]
