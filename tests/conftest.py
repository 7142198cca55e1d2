"""Shared test fixtures for mailsweep tests."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from mailsweep.audit import InMemoryAuditLog
from mailsweep.config import Settings
from mailsweep.deletion import InMemoryTicketStore
from mailsweep.errors import GatewayError, NotFoundError
from mailsweep.service import MailboxService


# === Fake Gmail gateway ===

def make_message(
    message_id: str,
    subject: str = "Hello",
    sender: str = "news@example.com",
    list_unsubscribe: Optional[str] = None,
    extra_headers: Optional[list[tuple[str, str]]] = None,
    internal_date: str = "1704110400000",
) -> dict:
    """Build a metadata-format message as returned by users.messages.get"""
    headers = [
        {"name": "From", "value": sender},
        {"name": "To", "value": "me@example.com"},
        {"name": "Subject", "value": subject},
    ]
    if list_unsubscribe:
        headers.append({"name": "List-Unsubscribe", "value": list_unsubscribe})
    for name, value in extra_headers or []:
        headers.append({"name": name, "value": value})

    return {
        "id": message_id,
        "threadId": f"thread_{message_id}",
        "snippet": f"Snippet of {subject}",
        "internalDate": internal_date,
        "labelIds": ["INBOX"],
        "payload": {"mimeType": "text/plain", "headers": headers},
    }


class FakeGateway:
    """In-memory stand-in for GmailGateway that records every call"""

    def __init__(
        self,
        messages: Optional[list[dict]] = None,
        estimate: Optional[int] = None,
        labels: Optional[list[dict]] = None,
    ):
        messages = messages or []
        self.messages = {m["id"]: m for m in messages}
        self.order = [m["id"] for m in messages]
        self.estimate = estimate
        self.labels = labels or []

        self.deleted: set[str] = set()
        self.list_calls: list[dict] = []
        self.get_calls: list[str] = []
        self.delete_calls: list[list[str]] = []

        # Failure injection
        self.list_errors: list[Exception] = []
        self.failing_gets: set[str] = set()
        self.delete_failures: dict[int, GatewayError] = {}

        self._lock = threading.Lock()

    def _live_ids(self) -> list[str]:
        return [i for i in self.order if i not in self.deleted]

    def list_messages(self, query, max_results=100, include_spam_trash=False, page_token=None):
        self.list_calls.append(
            {"query": query, "max_results": max_results, "include_spam_trash": include_spam_trash}
        )
        if self.list_errors:
            raise self.list_errors.pop(0)

        ids = self._live_ids()
        page = ids[:max_results]
        estimate = self.estimate if self.estimate is not None else len(ids)

        result = {"resultSizeEstimate": estimate}
        if page:
            result["messages"] = [{"id": i, "threadId": f"thread_{i}"} for i in page]
        if len(ids) > max_results:
            result["nextPageToken"] = "next"
        return result

    def get_message(self, message_id, format="metadata"):
        with self._lock:
            self.get_calls.append(message_id)
        if message_id in self.failing_gets:
            raise GatewayError("Gmail API error 400: failedPrecondition", status=400)
        if message_id not in self.messages or message_id in self.deleted:
            raise NotFoundError(f"Gmail API error 404: {message_id}", status=404)
        return self.messages[message_id]

    def batch_delete(self, message_ids):
        index = len(self.delete_calls)
        self.delete_calls.append(list(message_ids))
        if index in self.delete_failures:
            raise self.delete_failures[index]
        self.deleted.update(message_ids)

    def list_labels(self):
        return list(self.labels)


class FakeClock:
    """Controllable clock for ticket expiry tests"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class SleepRecorder:
    """Records requested sleeps instead of sleeping"""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# === Fixtures ===

@pytest.fixture
def ten_messages():
    return [make_message(f"msg_{i:03d}", subject=f"Offer {i}") for i in range(10)]


@pytest.fixture
def gateway(ten_messages):
    return FakeGateway(ten_messages)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return InMemoryAuditLog()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        audit_log_path=tmp_path / "audit.jsonl",
        ticket_store="memory",
        ticket_db_path=tmp_path / "tickets.db",
    )


@pytest.fixture
def make_service(settings, audit, sleep, clock):
    """Factory building a MailboxService around a given gateway"""

    def factory(gateway):
        return MailboxService(
            gateway,
            settings=settings,
            audit=audit,
            ticket_store=InMemoryTicketStore(),
            sleep=sleep,
            clock=clock,
        )

    return factory


@pytest.fixture
def service(make_service, gateway):
    return make_service(gateway)
