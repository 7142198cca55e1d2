"""Thin wrapper over the Gmail API calls mailsweep needs."""

import logging
from typing import Any, Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest

from mailsweep.errors import AuthError, GatewayError

logger = logging.getLogger(__name__)

# Gmail API hard limits
MAX_LIST_RESULTS = 500
MAX_BATCH_DELETE_IDS = 1000


class GmailGateway:
    """
    Stateless access to ``users.messages`` and ``users.labels``.

    Every call raises GatewayError instead of HttpError or a network error
    (AuthError if the token cannot be refreshed). When built with
    credentials, each request runs on its own authorized HTTP object so the
    gateway can be shared between threads (httplib2 is not thread safe).
    """

    def __init__(
        self,
        service: Resource,
        credentials: Optional[Credentials] = None,
        user_id: str = "me",
    ):
        self.service = service
        self.credentials = credentials
        self.user_id = user_id

    @classmethod
    def from_credentials(cls, credentials: Credentials) -> "GmailGateway":
        service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        return cls(service, credentials=credentials)

    def _execute(self, request: HttpRequest) -> Any:
        try:
            if self.credentials is None:
                return request.execute()
            http = AuthorizedHttp(self.credentials, http=httplib2.Http())
            return request.execute(http=http)
        except HttpError as e:
            raise GatewayError.from_http_error(e) from e
        except RefreshError as e:
            raise AuthError(f"Gmail credentials could not be refreshed: {e}") from e
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            raise GatewayError.from_transport_error(e) from e

    def list_messages(
        self,
        query: str,
        max_results: int = 100,
        include_spam_trash: bool = False,
        page_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """List message ids matching ``query`` (one page)."""
        params: dict[str, Any] = {
            "userId": self.user_id,
            "q": query,
            "maxResults": min(max_results, MAX_LIST_RESULTS),
        }
        if include_spam_trash:
            params["includeSpamTrash"] = True
        if page_token:
            params["pageToken"] = page_token

        return self._execute(self.service.users().messages().list(**params))

    def get_message(self, message_id: str, format: str = "metadata") -> dict[str, Any]:
        """Fetch one message in ``minimal``, ``metadata`` or ``full`` format."""
        request = self.service.users().messages().get(
            userId=self.user_id, id=message_id, format=format
        )
        return self._execute(request)

    def batch_delete(self, message_ids: list[str]) -> None:
        """Permanently delete up to 1000 messages in one call."""
        if len(message_ids) > MAX_BATCH_DELETE_IDS:
            raise ValueError(
                f"batchDelete accepts at most {MAX_BATCH_DELETE_IDS} ids, "
                f"got {len(message_ids)}"
            )
        logger.debug(f"batchDelete of {len(message_ids)} messages")
        request = self.service.users().messages().batchDelete(
            userId=self.user_id, body={"ids": list(message_ids)}
        )
        self._execute(request)

    def list_labels(self) -> list[dict[str, Any]]:
        """List every label in the mailbox."""
        results = self._execute(self.service.users().labels().list(userId=self.user_id))
        return results.get("labels", [])
