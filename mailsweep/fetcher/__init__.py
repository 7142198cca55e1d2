"""Fetcher module for Gmail queries and item retrieval."""

from .gateway import GmailGateway
from .labels import list_labels
from .messages import QueryEngine, build_query, extract_body_text
from .models import ItemSummary, MessagePart, QueryResult, first_header
from .retry import RetryExecutor

__all__ = [
    "GmailGateway",
    "ItemSummary",
    "MessagePart",
    "QueryEngine",
    "QueryResult",
    "RetryExecutor",
    "build_query",
    "extract_body_text",
    "first_header",
    "list_labels",
]
