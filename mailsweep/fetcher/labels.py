"""Gmail label listing."""

from typing import Any, Optional

from .gateway import GmailGateway
from .retry import RetryExecutor


def list_labels(
    gateway: GmailGateway,
    include_system_labels: bool = True,
    include_user_labels: bool = True,
    retry: Optional[RetryExecutor] = None,
) -> list[dict[str, Any]]:
    """
    List Gmail labels, optionally dropping system or user labels.

    Args:
        gateway: Gmail gateway to query.
        include_system_labels: Keep labels such as INBOX and SENT.
        include_user_labels: Keep user-created labels.
        retry: Executor for the list call. A default one is used if omitted.

    Returns:
        Label dictionaries sorted by name.
    """
    retry = retry or RetryExecutor()
    labels = retry.execute(gateway.list_labels)

    if not include_system_labels:
        labels = [label for label in labels if label.get("type") != "system"]

    if not include_user_labels:
        labels = [label for label in labels if label.get("type") != "user"]

    return sorted(labels, key=lambda label: label.get("name", "").lower())
