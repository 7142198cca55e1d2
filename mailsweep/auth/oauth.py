"""OAuth 2.0 flow for Gmail API authentication."""

import logging
import os
from pathlib import Path
from typing import Optional

import requests
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from mailsweep.errors import AuthError

from .credentials import TokenStore

logger = logging.getLogger(__name__)

# messages.batchDelete is only granted by the full mail scope
DELETE_SCOPE = "https://mail.google.com/"

SCOPES = [DELETE_SCOPE]


def get_credentials_path() -> Path:
    """Get the path to the OAuth client credentials file."""
    return Path(os.getenv("GOOGLE_CREDENTIALS_PATH", "./credentials.json"))


def has_required_scope(creds: Credentials) -> bool:
    """Check that the credentials were granted the scope deletion needs."""
    return bool(creds.has_scopes([DELETE_SCOPE]))


def authenticate(interactive: bool = True, store: Optional[TokenStore] = None) -> Credentials:
    """
    Authenticate with Gmail API using OAuth 2.0.

    1. Load existing credentials that carry the deletion scope
    2. Refresh them if expired
    3. Run the browser flow if nothing usable exists and ``interactive`` is set

    Returns:
        Valid Google OAuth credentials with the deletion scope.

    Raises:
        AuthError: If no usable credentials can be obtained.
    """
    store = store or TokenStore()
    creds = store.load(scopes=SCOPES)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        try:
            return store.refresh(creds)
        except RefreshError as e:
            logger.warning(f"Token refresh failed, re-authorization required: {e}")
            creds = None

    if not interactive:
        raise AuthError(
            "No valid Gmail credentials. Run 'mailsweep auth' to authorize."
        )

    credentials_path = get_credentials_path()

    if not credentials_path.exists():
        raise AuthError(
            f"OAuth credentials file not found at {credentials_path}. "
            "Download credentials.json from Google Cloud Console "
            "and set GOOGLE_CREDENTIALS_PATH."
        )

    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
    creds = flow.run_local_server(port=0)
    store.save(creds)

    return creds


def get_gmail_service(interactive: bool = True) -> Resource:
    """Get an authenticated Gmail API service."""
    creds = authenticate(interactive=interactive)
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def revoke_credentials(store: Optional[TokenStore] = None) -> bool:
    """
    Revoke current OAuth credentials and remove the token file.

    Returns:
        True if a token file was removed.
    """
    store = store or TokenStore()
    creds = store.load()

    if creds and creds.token:
        try:
            requests.post(
                "https://oauth2.googleapis.com/revoke",
                params={"token": creds.token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=10,
            )
        except requests.RequestException as e:
            logger.warning(f"Token revocation failed: {e}")

    return store.delete()
