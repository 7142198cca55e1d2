"""On-disk storage for the Gmail OAuth token."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PATH = "./data/credentials/token.json"

# The token grants full mailbox access
TOKEN_FILE_MODE = 0o600


class TokenStore:
    """
    Reads and writes the authorized-user token file.

    The file is replaced atomically and readable only by its owner.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or os.getenv("TOKEN_PATH", DEFAULT_TOKEN_PATH))

    def load(self, scopes: Optional[list[str]] = None) -> Optional[Credentials]:
        """
        Load stored credentials.

        Args:
            scopes: If given, a token that was not granted all of them is
                treated as absent.

        Returns:
            Credentials, or None if there is no usable token.
        """
        if not self.path.exists():
            return None

        try:
            creds = Credentials.from_authorized_user_file(str(self.path))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return None

        if scopes and not creds.has_scopes(scopes):
            logger.warning(f"Stored token lacks {', '.join(scopes)}")
            return None

        return creds

    def save(self, creds: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")

        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, TOKEN_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(creds.to_json())
        os.replace(tmp, self.path)

    def refresh(self, creds: Credentials) -> Credentials:
        """
        Refresh expired credentials and persist the new token.

        Raises:
            google.auth.exceptions.RefreshError: If Google rejects the refresh token.
        """
        if creds.expired and creds.refresh_token:
            logger.info("Refreshing expired Gmail credentials")
            creds.refresh(Request())
            self.save(creds)
        return creds

    def delete(self) -> bool:
        """Remove the token file; False if there was none."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
