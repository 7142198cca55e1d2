"""Exception types shared across mailsweep."""

import json

from googleapiclient.errors import HttpError

# 403 reasons Gmail uses for quota and rate limiting. The upper-case form is
# the google.rpc.ErrorInfo reason sent alongside the legacy ones.
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "RATE_LIMIT_EXCEEDED"}


class MailsweepError(Exception):
    """Base class for mailsweep errors."""


class AuthError(MailsweepError):
    """Credentials are missing, invalid or lack the required scope."""


class GatewayError(MailsweepError):
    """A call to the Gmail API failed."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str = "",
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.retryable = retryable

    @property
    def transient(self) -> bool:
        """True for failures expected to succeed on retry (rate limit, 5xx, network)."""
        if self.retryable is not None:
            return self.retryable
        if self.status is None:
            return False
        if self.status == 429 or self.status >= 500:
            return True
        return self.status == 403 and self.reason in RATE_LIMIT_REASONS

    @classmethod
    def from_http_error(cls, error: HttpError) -> "GatewayError":
        """Translate a googleapiclient HttpError."""
        status = error.resp.status if error.resp is not None else None
        reason = _first_reason(error)
        message = f"Gmail API error {status}: {reason or error}"
        if status == 404:
            return NotFoundError(message, status=status, reason=reason)
        return cls(message, status=status, reason=reason)

    @classmethod
    def from_transport_error(cls, error: Exception) -> "GatewayError":
        """Wrap a network-level failure as a retryable GatewayError."""
        return cls(f"Network error talking to Gmail: {str(error) or type(error).__name__}", retryable=True)


class NotFoundError(GatewayError):
    """The requested item does not exist."""


def _first_reason(error: HttpError) -> str:
    """
    Get the machine-readable reason from an HttpError, if any.

    The legacy ``error.errors[].reason`` in the response body is preferred;
    googleapiclient puts ``error.details`` first in ``error_details``.
    """
    try:
        body = json.loads(error.content)
    except (TypeError, ValueError):
        body = None

    payload = body.get("error") if isinstance(body, dict) else None
    if isinstance(payload, dict):
        for entry in payload.get("errors") or []:
            if isinstance(entry, dict) and entry.get("reason"):
                return entry["reason"]

    details = getattr(error, "error_details", None)
    if isinstance(details, list):
        for detail in details:
            if isinstance(detail, dict) and detail.get("reason"):
                return detail["reason"]
    return getattr(error, "reason", "") or ""
