"""Locate unsubscribe links in matching messages."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlparse

from mailsweep.config import DEFAULT_TRUSTED_DOMAINS
from mailsweep.fetcher import ItemSummary, MessagePart, QueryEngine

HEADER_URL_PATTERN = re.compile(r"<(https?://[^>]+)>")

ANCHOR_PATTERN = re.compile(
    r"<a\s[^>]*href=[\"'](https?://[^\"']+)[\"'][^>]*>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)

ONE_CLICK_VALUE = "list-unsubscribe=one-click"


@dataclass(frozen=True)
class UnsubscribeLink:
    """
    An unsubscribe URL found in a message.

    ``trusted`` only means the host matched an allow-list of known sender
    platforms. It is a heuristic, not a guarantee that the link is safe.
    """

    url: str
    method: str = "GET"
    origin: str = "header"
    trusted: bool = False


def extract_header_urls(header_value: str) -> list[str]:
    """Every ``<http(s)://...>`` token in a List-Unsubscribe value."""
    return HEADER_URL_PATTERN.findall(header_value or "")


def extract_body_links(part: Optional[MessagePart]) -> list[str]:
    """
    Anchor targets in text/html parts that look like unsubscribe links.

    Only bodies already present in the tree are inspected; metadata-format
    messages have none, so this returns nothing for them.
    """
    if part is None:
        return []

    urls = []
    for node in part.walk():
        if node.mime_type != "text/html" or not node.body:
            continue
        html = node.body.decode("utf-8", errors="replace")
        for url, text in ANCHOR_PATTERN.findall(html):
            if "unsubscribe" in url.lower() or "unsubscribe" in text.lower():
                urls.append(url)
    return urls


def is_trusted_domain(url: str, trusted_domains: Iterable[str]) -> bool:
    """True if the URL's host contains one of ``trusted_domains``."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return bool(host) and any(domain in host for domain in trusted_domains)


class UnsubscribeScanner:
    """Search the mailbox and collect deduplicated unsubscribe links."""

    def __init__(
        self,
        engine: QueryEngine,
        trusted_domains: Iterable[str] = DEFAULT_TRUSTED_DOMAINS,
    ):
        self.engine = engine
        self.trusted_domains = tuple(trusted_domains)

    def scan(
        self,
        filter: str,
        max_results: int = 50,
        verify_trust: bool = True,
    ) -> list[UnsubscribeLink]:
        """
        Find unsubscribe links in messages matching ``filter``.

        Returns:
            Links in discovery order, one per distinct URL.
        """
        result = self.engine.search(filter, max_results=max_results)
        return self.links_for_items(result.items, verify_trust=verify_trust)

    def links_for_items(
        self, items: Iterable[ItemSummary], verify_trust: bool = True
    ) -> list[UnsubscribeLink]:
        links: dict[str, UnsubscribeLink] = {}

        for item in items:
            one_click = ONE_CLICK_VALUE in item.header("List-Unsubscribe-Post").lower()
            method = "POST" if one_click else "GET"

            for url in extract_header_urls(item.header("List-Unsubscribe")):
                if url not in links:
                    links[url] = self._link(url, method, "header", verify_trust)

            for url in extract_body_links(item.payload):
                if url not in links:
                    links[url] = self._link(url, "GET", "body", verify_trust)

        return list(links.values())

    def _link(self, url: str, method: str, origin: str, verify_trust: bool) -> UnsubscribeLink:
        trusted = verify_trust and is_trusted_domain(url, self.trusted_domains)
        return UnsubscribeLink(url=url, method=method, origin=origin, trusted=trusted)
