"""Authentication module for Gmail API."""

from .credentials import TokenStore
from .oauth import (
    DELETE_SCOPE,
    SCOPES,
    authenticate,
    get_gmail_service,
    has_required_scope,
    revoke_credentials,
)

__all__ = [
    "DELETE_SCOPE",
    "SCOPES",
    "TokenStore",
    "authenticate",
    "get_gmail_service",
    "has_required_scope",
    "revoke_credentials",
]
