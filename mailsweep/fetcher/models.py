"""Typed views of Gmail API message resources."""

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional


@dataclass(frozen=True)
class MessagePart:
    """One node of a message payload tree."""

    mime_type: str = ""
    headers: tuple[tuple[str, str], ...] = ()
    body: Optional[bytes] = None
    attachment_id: Optional[str] = None
    filename: str = ""
    parts: tuple["MessagePart", ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MessagePart":
        """Build a part tree from a Gmail ``payload`` dict."""
        body = payload.get("body", {}) or {}
        return cls(
            mime_type=payload.get("mimeType", ""),
            headers=tuple(
                (h.get("name", ""), h.get("value", ""))
                for h in payload.get("headers", []) or []
            ),
            body=_decode_body(body.get("data")),
            attachment_id=body.get("attachmentId"),
            filename=payload.get("filename", "") or "",
            parts=tuple(cls.from_payload(p) for p in payload.get("parts", []) or []),
        )

    def walk(self) -> Iterator["MessagePart"]:
        """Yield this part and every descendant, depth first."""
        yield self
        for part in self.parts:
            yield from part.walk()


def _decode_body(data: Optional[str]) -> Optional[bytes]:
    if not data:
        return None
    try:
        # Gmail strips base64url padding
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError):
        return None


def first_header(
    part: MessagePart, name: str, case_insensitive: bool = True
) -> Optional[str]:
    """Return the first value of header ``name`` on ``part``, or None."""
    wanted = name.lower() if case_insensitive else name
    for header_name, value in part.headers:
        candidate = header_name.lower() if case_insensitive else header_name
        if candidate == wanted:
            return value
    return None


@dataclass(frozen=True)
class ItemSummary:
    """Lightweight projection of a Gmail message."""

    id: str
    thread_id: str = ""
    snippet: str = ""
    internal_timestamp: Optional[datetime] = None
    # first value of each header, in message order
    headers: tuple[tuple[str, str], ...] = ()
    label_ids: tuple[str, ...] = ()
    payload: Optional[MessagePart] = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ItemSummary":
        """Build a summary from a ``users.messages.get`` response."""
        payload = message.get("payload")
        tree = MessagePart.from_payload(payload) if payload else None

        headers: dict[str, str] = {}
        if tree is not None:
            for name, value in tree.headers:
                headers.setdefault(name, value)

        return cls(
            id=message.get("id", ""),
            thread_id=message.get("threadId", ""),
            snippet=message.get("snippet", ""),
            internal_timestamp=parse_internal_date(message.get("internalDate")),
            headers=tuple(headers.items()),
            label_ids=tuple(message.get("labelIds", []) or []),
            payload=tree,
        )

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key.lower() == name_lower:
                return value
        return default


def parse_internal_date(raw: Optional[str]) -> Optional[datetime]:
    """Convert Gmail's millisecond epoch string to an aware datetime."""
    if not raw:
        return None
    try:
        return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class QueryResult:
    """Result of one search against the mailbox."""

    items: tuple[ItemSummary, ...] = ()
    estimated_total: int = 0
    continuation: Optional[str] = None
    # ids listed by the server whose metadata fetch failed
    dropped_ids: tuple[str, ...] = ()
    # every id the server listed, in list order, fetched or not
    listed_ids: tuple[str, ...] = ()

    @property
    def ids(self) -> list[str]:
        """Ids of the fetched items."""
        return [item.id for item in self.items]
