"""
mailsweep MCP server - FastMCP tool surface.

Tools run the blocking Gmail calls in a worker thread. Gateway failures are
raised as ToolError (the client sees an error result); safety rejections are
returned as ordinary text explaining the next step.
"""

import asyncio
import logging
import threading
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from mailsweep.auth import authenticate
from mailsweep.config import Settings
from mailsweep.deletion import DeletionStatus
from mailsweep.errors import MailsweepError
from mailsweep.fetcher import GmailGateway
from mailsweep.service import MailboxService
from mailsweep.ui import render

logger = logging.getLogger(__name__)

mcp = FastMCP("mailsweep")

MAX_PREVIEW_RESULTS = 200

_service: Optional[MailboxService] = None
_service_lock = threading.Lock()


def get_service() -> MailboxService:
    """Build the mailbox service on first use."""
    global _service
    with _service_lock:
        if _service is None:
            settings = Settings.from_env()
            creds = authenticate(interactive=False)
            _service = MailboxService(GmailGateway.from_credentials(creds), settings)
            logger.info("Gmail service initialized")
        return _service


def set_service(service: Optional[MailboxService]) -> None:
    """Replace the mailbox service (used by tests and embedding code)."""
    global _service
    with _service_lock:
        _service = service


def _require_service() -> MailboxService:
    try:
        return get_service()
    except MailsweepError as e:
        raise ToolError(f"Error connecting to Gmail: {e}") from e


async def _call(action: str, func, *args, **kwargs):
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except (MailsweepError, ValueError) as e:
        logger.error(f"{action} failed: {e}")
        raise ToolError(f"Error {action}: {e}") from e


@mcp.tool()
async def search_emails(
    query: str, max_results: int = 100, include_spam_trash: bool = False
) -> str:
    """
    Search for emails using Gmail query syntax.

    Args:
        query: Gmail search query (e.g. "from:example.com", "is:unread older_than:30d")
        max_results: Maximum number of results to return (default: 100, max: 500)
        include_spam_trash: Whether to include spam and trash (default: false)
    """
    service = _require_service()
    result = await _call("searching emails", service.search, query, max_results, include_spam_trash)
    return render.render_search(query, result)


@mcp.tool()
async def count_emails(query: str, include_spam_trash: bool = False) -> str:
    """
    Estimate how many emails match a query.

    The number is Gmail's result size estimate, not an exact count.
    """
    service = _require_service()
    total = await _call("counting emails", service.count, query, include_spam_trash)
    return render.render_count(query, total)


@mcp.tool()
async def preview_emails_for_deletion(
    query: str,
    max_results: int = 50,
    include_spam_trash: bool = False,
    show_full_headers: bool = False,
) -> str:
    """
    Preview emails that would be deleted - USE THIS BEFORE delete_emails.

    Args:
        query: Gmail search query for emails to preview
        max_results: Maximum number of emails to preview (default: 50, max: 200)
        include_spam_trash: Whether to include spam and trash (default: false)
        show_full_headers: Whether to list every header of each email (default: false)
    """
    max_results = min(max_results, MAX_PREVIEW_RESULTS)
    service = _require_service()
    result = await _call("previewing emails", service.search, query, max_results, include_spam_trash)
    return render.render_preview(query, result, max_results, show_full_headers)


@mcp.tool()
async def delete_emails(
    query: str,
    dry_run: bool = True,
    max_deletions: int = 100,
    require_confirmation: bool = True,
    include_spam_trash: bool = False,
    confirmation_token: Optional[str] = None,
) -> str:
    """
    Permanently delete emails matching a query, in two steps.

    1. Call with dry_run=true: returns the match count, a preview and a
       confirmation token valid for 5 minutes.
    2. Call again with the same query, dry_run=false and that token.

    Args:
        query: Gmail search query for emails to delete
        dry_run: Only report what would be deleted (default: true)
        max_deletions: Refuse if more emails than this match (default: 100, max: 500)
        require_confirmation: Require a token from a prior dry run (default: true)
        include_spam_trash: Whether to include spam and trash (default: false)
        confirmation_token: Token returned by the dry run
    """
    service = _require_service()
    outcome = await _call(
        "deleting emails",
        service.delete,
        query,
        dry_run=dry_run,
        max_deletions=max_deletions,
        require_confirmation=require_confirmation,
        include_spam_trash=include_spam_trash,
        confirmation_token=confirmation_token,
    )
    text = render.render_deletion(outcome)
    if outcome.status == DeletionStatus.FAILED:
        raise ToolError(text)
    return text


@mcp.tool()
async def get_email_details(
    message_id: str, include_headers: bool = True, include_body: bool = False
) -> str:
    """Get detailed information about a specific email."""
    service = _require_service()
    item = await _call(
        "getting email details",
        service.get_item_details,
        message_id,
        include_headers,
        include_body,
    )
    return render.render_item_details(item, include_headers, include_body)


@mcp.tool()
async def find_unsubscribe_links(
    query: str, max_results: int = 50, verify_links: bool = True
) -> str:
    """
    Find unsubscribe links in emails matching a query.

    Args:
        query: Gmail search query to find emails with unsubscribe links
        max_results: Maximum number of emails to scan (default: 50)
        verify_links: Flag links whose host belongs to a known sender platform (default: true)
    """
    service = _require_service()
    links = await _call(
        "finding unsubscribe links",
        service.scan_unsubscribe_links,
        query,
        max_results,
        verify_links,
    )
    return render.render_unsubscribe_links(query, links)


@mcp.tool()
async def list_labels(
    include_system_labels: bool = True, include_user_labels: bool = True
) -> str:
    """List Gmail labels, optionally only system or only user labels."""
    service = _require_service()
    labels = await _call(
        "listing labels", service.list_labels, include_system_labels, include_user_labels
    )
    return render.render_labels(labels)


@mcp.tool()
async def get_operation_log(limit: int = 20) -> str:
    """Show the most recent audited operations (searches, counts, deletions, scans)."""
    service = _require_service()
    records = await _call("reading the operation log", service.operation_log, limit)
    return render.render_operation_log(records)
