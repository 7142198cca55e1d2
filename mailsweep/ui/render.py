"""Plain-text rendering of tool responses."""

from typing import Any, Optional

from mailsweep.audit import AuditRecord
from mailsweep.deletion import DeletionOutcome, DeletionStatus
from mailsweep.fetcher import ItemSummary, QueryResult, extract_body_text
from mailsweep.unsubscribe import UnsubscribeLink

SNIPPET_WIDTH = 100


def format_date(item: ItemSummary, with_time: bool = False) -> str:
    if item.internal_timestamp is None:
        return "(unknown date)"
    fmt = "%Y-%m-%d %H:%M UTC" if with_time else "%Y-%m-%d"
    return item.internal_timestamp.strftime(fmt)


def truncate(text: str, width: int = SNIPPET_WIDTH) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= width else text[: width - 3] + "..."


def _dropped_warning(result: QueryResult) -> str:
    if not result.dropped_ids:
        return ""
    return (
        f"\n! {len(result.dropped_ids)} matching messages could not be fetched "
        f"and are not listed: {', '.join(result.dropped_ids[:10])}"
    )


def render_search(filter: str, result: QueryResult) -> str:
    lines = [
        f"Found {len(result.items)} emails for {filter!r} "
        f"(estimated total: {result.estimated_total})",
        "",
    ]
    for item in result.items:
        lines.append(
            f"ID: {item.id} | Date: {format_date(item)} | "
            f"From: {item.header('From', '(unknown sender)')} | "
            f"Snippet: {truncate(item.snippet)}"
        )
    return "\n".join(lines) + _dropped_warning(result)


def render_count(filter: str, total: int) -> str:
    return (
        f"Approximately {total} emails match {filter!r}.\n\n"
        "This is Gmail's result size estimate, not an exact count. "
        "Use preview_emails_for_deletion to see the messages themselves."
    )


def render_preview(
    filter: str,
    result: QueryResult,
    max_results: int,
    show_full_headers: bool = False,
) -> str:
    if not result.items:
        return f"No emails found matching query: {filter!r}"

    lines = [
        f"DELETION PREVIEW - {len(result.items)} emails would be deleted",
        f"Query: {filter!r}",
        f"Estimated total matching emails: {result.estimated_total}",
        "=" * 40,
        "",
    ]

    for index, item in enumerate(result.items, start=1):
        lines.extend(
            [
                f"{index}. EMAIL ID: {item.id}",
                f"   Date: {format_date(item, with_time=True)}",
                f"   From: {item.header('From', '(unknown sender)')}",
                f"   To: {item.header('To', '(unknown recipient)')}",
                f"   Subject: {item.header('Subject', '(no subject)')}",
                f"   Snippet: {item.snippet or '(no preview available)'}",
            ]
        )
        if show_full_headers and item.payload is not None:
            lines.append("   Headers:")
            lines.extend(f"      {name}: {value}" for name, value in item.payload.headers)
        lines.append("")

    if result.estimated_total > max_results:
        lines.append(
            f"! WARNING: only showing the first {max_results} emails, but about "
            f"{result.estimated_total} match this query. Narrow the query or "
            "raise max_results to see more."
        )

    lines.append(
        "Deleting these emails is permanent. Run delete_emails with dry_run=true "
        "to get a confirmation token, then repeat with dry_run=false and that token."
    )
    return "\n".join(lines) + _dropped_warning(result)


def _preview_lines(outcome: DeletionOutcome) -> list[str]:
    lines = []
    for index, item in enumerate(outcome.preview, start=1):
        lines.append(
            f"{index}. {item.header('Subject', '(no subject)')} - "
            f"From: {item.header('From', '(unknown sender)')} ({format_date(item)})"
        )
    remaining = outcome.matched - len(outcome.preview)
    if remaining > 0:
        lines.append(f"... and {remaining} more emails")
    return lines


def render_deletion(outcome: DeletionOutcome) -> str:
    """Describe a DeletionOutcome and the caller's next step."""
    status = outcome.status

    if status == DeletionStatus.FAILED:
        return f"Error deleting emails: {outcome.message}"

    if status == DeletionStatus.COMPLETED and outcome.matched == 0:
        return f"No emails found matching query: {outcome.filter!r}. Nothing was deleted."

    if status == DeletionStatus.REJECTED_LIMIT:
        return (
            f"SAFETY CHECK FAILED: found {outcome.matched} emails, but the maximum "
            f"deletion limit is {outcome.max_deletions}.\n\n"
            "Nothing was deleted. Options:\n"
            "1. Narrow the query to match fewer emails\n"
            "2. Use preview_emails_for_deletion to see what matches\n"
            "3. Raise max_deletions (up to 500) if you are sure"
        )

    if status == DeletionStatus.DRY_RUN_ISSUED:
        ticket = outcome.ticket
        lines = [
            "DRY RUN COMPLETE - no emails were deleted",
            "",
            f"Would delete {outcome.matched} emails matching {outcome.filter!r}:",
            *_preview_lines(outcome),
            "",
            f"Confirmation token: {ticket.token}",
            f"Valid until: {ticket.expires_at.isoformat()} (single use)",
            "",
            "To delete exactly these emails, call delete_emails again with the same "
            "query, dry_run=false and this confirmation_token.",
        ]
        return "\n".join(lines)

    if status == DeletionStatus.CONFIRMATION_REQUIRED:
        lines = [
            "DELETION CONFIRMATION REQUIRED",
            "",
            f"You are about to PERMANENTLY delete {outcome.matched} emails matching "
            f"{outcome.filter!r}.",
            "",
            f"Preview of first {len(outcome.preview)} emails:",
            *_preview_lines(outcome),
            "",
            "Nothing was deleted. Run delete_emails with dry_run=true to obtain a "
            "confirmation token, then repeat with dry_run=false and that token.",
        ]
        return "\n".join(lines)

    if status in (DeletionStatus.INVALID_TICKET, DeletionStatus.EXPIRED_TICKET):
        label = "expired" if status == DeletionStatus.EXPIRED_TICKET else "invalid"
        return (
            f"Confirmation token is {label}: {outcome.message}.\n\n"
            "Nothing was deleted. Run delete_emails with dry_run=true to obtain "
            "a fresh token."
        )

    lines = [
        "EMAIL DELETION COMPLETED",
        "",
        f"Deleted: {outcome.deleted_count} emails",
    ]
    if outcome.failed_count:
        lines.append(f"Failed: {outcome.failed_count} emails")
    if outcome.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"  - {error}" for error in outcome.errors)
        lines.append("")
        lines.append("Failed batches can be retried by repeating the dry run and delete.")
    lines.append("")
    lines.append("Deleted emails cannot be recovered.")
    return "\n".join(lines)


def render_item_details(
    item: ItemSummary, include_headers: bool = True, include_body: bool = False
) -> str:
    lines = [
        f"Email ID: {item.id}",
        f"Thread ID: {item.thread_id}",
        f"Date: {format_date(item, with_time=True)}",
        f"Snippet: {item.snippet}",
    ]

    if include_headers and item.payload is not None and item.payload.headers:
        lines.append("Headers:")
        lines.extend(f"  {name}: {value}" for name, value in item.payload.headers)

    if include_body and item.payload is not None:
        body = extract_body_text(item.payload)
        lines.append("Body:")
        lines.append(body or "(no text/plain body)")

    return "\n".join(lines)


def render_unsubscribe_links(filter: str, links: list[UnsubscribeLink]) -> str:
    if not links:
        return f"No unsubscribe links found in emails matching query: {filter!r}"

    lines = [f"Found {len(links)} unsubscribe links:", ""]
    for index, link in enumerate(links, start=1):
        lines.extend(
            [
                f"{index}. {link.url}",
                f"   Source: {link.origin}",
                f"   Method: {link.method}",
                f"   Known sender platform: {'yes' if link.trusted else 'no'}",
                "",
            ]
        )
    lines.append(
        "SECURITY WARNING: the known-platform check is a hostname heuristic, not "
        "a guarantee. Only follow unsubscribe links from senders you recognise; "
        "malicious links can confirm your address to spammers."
    )
    return "\n".join(lines)


def render_labels(labels: list[dict[str, Any]]) -> str:
    if not labels:
        return "No labels found"

    lines = [f"Found {len(labels)} labels:", ""]
    for label in labels:
        lines.append(f"- {label.get('name', '')} ({label.get('type', 'unknown')})")
        if label.get("messagesTotal") is not None:
            lines.append(f"  Messages: {label['messagesTotal']}")
    return "\n".join(lines)


def render_operation_log(records: list[AuditRecord]) -> str:
    if not records:
        return "No operations recorded yet"

    lines = [f"Last {len(records)} operations:", ""]
    for record in records:
        outcome = "ok" if record.succeeded else f"failed ({record.error})"
        lines.append(
            f"{record.timestamp.isoformat()} {record.operation.value}"
            f"{' [dry run]' if record.dry_run else ''} "
            f"query={record.filter!r} items={_count(record.item_count)} {outcome}"
        )
    return "\n".join(lines)


def _count(value: Optional[int]) -> str:
    return "-" if value is None else str(value)
