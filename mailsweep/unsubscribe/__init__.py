"""Unsubscribe link discovery."""

from .scanner import (
    UnsubscribeLink,
    UnsubscribeScanner,
    extract_body_links,
    extract_header_urls,
    is_trusted_domain,
)

__all__ = [
    "UnsubscribeLink",
    "UnsubscribeScanner",
    "extract_body_links",
    "extract_header_urls",
    "is_trusted_domain",
]
