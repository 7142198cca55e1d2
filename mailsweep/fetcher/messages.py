"""Gmail message search with batched metadata fetches and pacing."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from mailsweep.errors import GatewayError

from .gateway import MAX_LIST_RESULTS, GmailGateway
from .models import ItemSummary, MessagePart, QueryResult
from .retry import RetryExecutor

logger = logging.getLogger(__name__)

SPAM_TRASH_EXCLUSION = "-in:spam -in:trash"


def build_query(filter: str, include_spam_trash: bool = False) -> str:
    """Append spam/trash exclusions to a Gmail filter unless asked not to."""
    filter = filter.strip()
    if include_spam_trash:
        return filter
    return f"{filter} {SPAM_TRASH_EXCLUSION}".strip()


def extract_body_text(part: MessagePart) -> str:
    """Return the first text/plain body in the tree, decoded."""
    if part.body and part.mime_type in ("", "text/plain"):
        return part.body.decode("utf-8", errors="replace")

    for child in part.parts:
        # Recursively check nested parts
        nested = extract_body_text(child)
        if nested:
            return nested

    return ""


class QueryEngine:
    """Run Gmail filters and fetch metadata for the matching items."""

    def __init__(
        self,
        gateway: GmailGateway,
        retry: Optional[RetryExecutor] = None,
        batch_size: int = 50,
        pacing_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.retry = retry or RetryExecutor()
        self.batch_size = batch_size
        self.pacing_delay = pacing_delay
        self.sleep = sleep

    def search(
        self,
        filter: str,
        max_results: int = 100,
        include_spam_trash: bool = False,
    ) -> QueryResult:
        """
        Find messages matching ``filter``.

        Args:
            filter: Gmail search query (e.g. "from:news@example.com older_than:30d").
            max_results: Items to return, 1..500 (larger values are capped).
            include_spam_trash: Search spam and trash as well.

        Returns:
            QueryResult whose ``estimated_total`` is the server's estimate of
            all matches, which may exceed the number of items returned.

        Raises:
            ValueError: If ``max_results`` is below 1.
            GatewayError: If the list call fails after retries.
        """
        if max_results < 1:
            raise ValueError(f"max_results must be at least 1, got {max_results}")
        max_results = min(max_results, MAX_LIST_RESULTS)

        query = build_query(filter, include_spam_trash)
        response = self.retry.execute(
            lambda: self.gateway.list_messages(
                query,
                max_results=max_results,
                include_spam_trash=include_spam_trash,
            )
        )

        refs = (response.get("messages") or [])[:max_results]
        estimated_total = int(response.get("resultSizeEstimate", 0) or 0)
        continuation = response.get("nextPageToken")

        if not refs:
            return QueryResult(estimated_total=estimated_total, continuation=continuation)

        listed = [ref["id"] for ref in refs]
        items, dropped = self._fetch_metadata(listed)

        return QueryResult(
            items=tuple(items),
            estimated_total=estimated_total,
            continuation=continuation,
            dropped_ids=tuple(dropped),
            listed_ids=tuple(listed),
        )

    def count(self, filter: str, include_spam_trash: bool = False) -> int:
        """
        Estimate how many messages match ``filter``.

        This is Gmail's ``resultSizeEstimate`` from a one-item list call,
        not an exact count.
        """
        return self.search(filter, max_results=1, include_spam_trash=include_spam_trash).estimated_total

    def get_item(
        self,
        item_id: str,
        include_headers: bool = True,
        include_body: bool = False,
    ) -> ItemSummary:
        """
        Fetch a single message.

        The format escalates from ``minimal`` to ``metadata`` to ``full``.

        Raises:
            NotFoundError: If the message does not exist.
        """
        if include_body:
            format = "full"
        elif include_headers:
            format = "metadata"
        else:
            format = "minimal"

        message = self.retry.execute(lambda: self.gateway.get_message(item_id, format=format))
        return ItemSummary.from_message(message)

    def _fetch_metadata(self, ids: list[str]) -> tuple[list[ItemSummary], list[str]]:
        """
        Fetch metadata for ``ids`` in paced batches.

        Members of a batch are fetched concurrently. Failed fetches are left
        out of the items and returned as dropped ids.
        """
        items: list[ItemSummary] = []
        dropped: list[str] = []

        for start in range(0, len(ids), self.batch_size):
            batch = ids[start : start + self.batch_size]

            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [pool.submit(self._fetch_one, message_id) for message_id in batch]

            for message_id, future in zip(batch, futures):
                try:
                    items.append(future.result())
                except GatewayError as e:
                    logger.warning(f"Dropping message {message_id} from results: {e}")
                    dropped.append(message_id)

            # Pace batches to stay under the per-user quota
            if start + self.batch_size < len(ids):
                self.sleep(self.pacing_delay)

        if dropped:
            logger.warning(f"{len(dropped)} of {len(ids)} messages could not be fetched")

        return items, dropped

    def _fetch_one(self, message_id: str) -> ItemSummary:
        message = self.retry.execute(
            lambda: self.gateway.get_message(message_id, format="metadata")
        )
        return ItemSummary.from_message(message)
