"""
Mailbox service - facade over the query engine, deletion workflow and scanner.

Wires the collaborators together from Settings and records an audit entry for
every search, count and unsubscribe scan.
"""

import logging
import time
from typing import Any, Callable, Optional

from mailsweep.audit import AuditLog, AuditRecord, JsonlAuditLog, OperationKind
from mailsweep.config import Settings
from mailsweep.deletion import (
    DeletionOutcome,
    DeletionWorkflow,
    InMemoryTicketStore,
    SqliteTicketStore,
    TicketBook,
    TicketStore,
)
from mailsweep.deletion.tickets import utcnow
from mailsweep.fetcher import (
    GmailGateway,
    ItemSummary,
    QueryEngine,
    QueryResult,
    RetryExecutor,
    list_labels,
)
from mailsweep.unsubscribe import UnsubscribeLink, UnsubscribeScanner

logger = logging.getLogger(__name__)


def build_ticket_store(settings: Settings) -> TicketStore:
    """Pick the ticket store named by ``settings.ticket_store``."""
    if settings.ticket_store == "memory":
        return InMemoryTicketStore()
    return SqliteTicketStore(settings.ticket_db_path)


class MailboxService:
    """Facade for mailbox operations exposed as tools."""

    def __init__(
        self,
        gateway: GmailGateway,
        settings: Optional[Settings] = None,
        audit: Optional[AuditLog] = None,
        ticket_store: Optional[TicketStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock=utcnow,
    ):
        self.settings = settings or Settings()
        self.gateway = gateway
        self.audit = audit or JsonlAuditLog(self.settings.audit_log_path)

        self.retry = RetryExecutor(
            max_attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            sleep=sleep,
        )
        self.engine = QueryEngine(
            gateway,
            retry=self.retry,
            batch_size=self.settings.batch_size,
            pacing_delay=self.settings.pacing_delay,
            sleep=sleep,
        )
        self.tickets = TicketBook(
            ticket_store or build_ticket_store(self.settings),
            ttl=self.settings.ticket_ttl,
            clock=clock,
        )
        self.workflow = DeletionWorkflow(
            self.engine,
            gateway,
            self.tickets,
            self.audit,
            retry=self.retry,
            batch_size=self.settings.batch_size,
            pacing_delay=self.settings.pacing_delay,
            sleep=sleep,
        )
        self.scanner = UnsubscribeScanner(self.engine, self.settings.trusted_domains)

    # === Queries ===

    def search(
        self, filter: str, max_results: int = 100, include_spam_trash: bool = False
    ) -> QueryResult:
        """Search and audit."""
        try:
            result = self.engine.search(filter, max_results, include_spam_trash)
        except Exception as e:
            self.audit.record(OperationKind.SEARCH, False, filter=filter, error=str(e) or type(e).__name__)
            raise

        self.audit.record(OperationKind.SEARCH, True, filter=filter, item_count=len(result.items))
        return result

    def count(self, filter: str, include_spam_trash: bool = False) -> int:
        """Estimated number of matches (Gmail's resultSizeEstimate)."""
        try:
            total = self.engine.count(filter, include_spam_trash)
        except Exception as e:
            self.audit.record(OperationKind.COUNT, False, filter=filter, error=str(e) or type(e).__name__)
            raise

        self.audit.record(OperationKind.COUNT, True, filter=filter, item_count=total)
        return total

    def get_item_details(
        self, item_id: str, include_headers: bool = True, include_body: bool = False
    ) -> ItemSummary:
        return self.engine.get_item(item_id, include_headers, include_body)

    def list_labels(
        self, include_system_labels: bool = True, include_user_labels: bool = True
    ) -> list[dict[str, Any]]:
        return list_labels(
            self.gateway,
            include_system_labels=include_system_labels,
            include_user_labels=include_user_labels,
            retry=self.retry,
        )

    # === Mutations ===

    def delete(
        self,
        filter: str,
        dry_run: bool = True,
        max_deletions: int = 100,
        require_confirmation: bool = True,
        include_spam_trash: bool = False,
        confirmation_token: Optional[str] = None,
    ) -> DeletionOutcome:
        """Run the deletion workflow (which audits itself)."""
        return self.workflow.delete(
            filter,
            dry_run=dry_run,
            max_deletions=max_deletions,
            require_confirmation=require_confirmation,
            include_spam_trash=include_spam_trash,
            confirmation_token=confirmation_token,
        )

    # === Unsubscribe ===

    def scan_unsubscribe_links(
        self, filter: str, max_results: int = 50, verify_trust: bool = True
    ) -> list[UnsubscribeLink]:
        try:
            links = self.scanner.scan(filter, max_results, verify_trust)
        except Exception as e:
            self.audit.record(
                OperationKind.UNSUBSCRIBE_SCAN, False, filter=filter, error=str(e) or type(e).__name__
            )
            raise

        self.audit.record(
            OperationKind.UNSUBSCRIBE_SCAN, True, filter=filter, item_count=len(links)
        )
        return links

    # === Audit ===

    def operation_log(self, limit: int = 20) -> list[AuditRecord]:
        return self.audit.read(limit=limit)
