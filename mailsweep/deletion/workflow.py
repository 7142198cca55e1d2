"""Safety state machine for bulk deletion."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from mailsweep.audit import AuditLog, OperationKind
from mailsweep.errors import GatewayError
from mailsweep.fetcher import GmailGateway, ItemSummary, QueryEngine, RetryExecutor

from .scheduler import run_batches
from .tickets import ConfirmationTicket, RedeemStatus, TicketBook

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 5
MAX_DELETIONS_LIMIT = 500


class DeletionStatus(str, Enum):
    REJECTED_LIMIT = "rejected_limit"
    DRY_RUN_ISSUED = "dry_run_issued"
    CONFIRMATION_REQUIRED = "confirmation_required"
    INVALID_TICKET = "invalid_ticket"
    EXPIRED_TICKET = "expired_ticket"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class DeletionOutcome:
    """Where a delete request ended up and what it did."""

    status: DeletionStatus
    filter: str
    matched: int = 0
    deleted_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)
    ticket: Optional[ConfirmationTicket] = None
    preview: list[ItemSummary] = field(default_factory=list)
    max_deletions: int = 0
    message: str = ""

    @property
    def mutated(self) -> bool:
        return self.deleted_count > 0

    @property
    def succeeded(self) -> bool:
        return self.status in (DeletionStatus.DRY_RUN_ISSUED, DeletionStatus.COMPLETED) and self.failed_count == 0


class DeletionWorkflow:
    """
    Turn "delete everything matching this filter" into paced batch deletes.

    Every request is counted first. Broad filters are rejected against
    ``max_deletions``; a dry run issues a confirmation ticket; a real delete
    needs either that ticket or ``require_confirmation=False``. Each request
    leaves exactly one audit record.
    """

    def __init__(
        self,
        engine: QueryEngine,
        gateway: GmailGateway,
        tickets: TicketBook,
        audit: AuditLog,
        retry: Optional[RetryExecutor] = None,
        batch_size: int = 50,
        pacing_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine
        self.gateway = gateway
        self.tickets = tickets
        self.audit = audit
        self.retry = retry or RetryExecutor()
        self.batch_size = batch_size
        self.pacing_delay = pacing_delay
        self.sleep = sleep

    def delete(
        self,
        filter: str,
        dry_run: bool = True,
        max_deletions: int = 100,
        require_confirmation: bool = True,
        include_spam_trash: bool = False,
        confirmation_token: Optional[str] = None,
    ) -> DeletionOutcome:
        """
        Delete messages matching ``filter``, subject to the safety checks.

        Args:
            filter: Gmail search query selecting the messages.
            dry_run: Only count and issue a confirmation ticket.
            max_deletions: Refuse if more messages than this match (1..500).
            require_confirmation: Demand a ticket from a prior dry run.
            include_spam_trash: Match spam and trash as well.
            confirmation_token: Token returned by an earlier dry run.

        Returns:
            DeletionOutcome; policy rejections are statuses, not exceptions.
        """
        if not 1 <= max_deletions <= MAX_DELETIONS_LIMIT:
            raise ValueError(
                f"max_deletions must be between 1 and {MAX_DELETIONS_LIMIT}, got {max_deletions}"
            )

        try:
            outcome = self._run(
                filter,
                dry_run=dry_run,
                max_deletions=max_deletions,
                require_confirmation=require_confirmation,
                include_spam_trash=include_spam_trash,
                confirmation_token=confirmation_token,
            )
        except Exception as e:
            # Still exactly one record when something unexpected escapes
            self.audit.record(
                OperationKind.DELETE,
                succeeded=False,
                filter=filter,
                dry_run=dry_run,
                error=str(e) or type(e).__name__,
            )
            raise

        self.audit.record(
            OperationKind.DELETE,
            succeeded=outcome.succeeded,
            filter=filter,
            item_count=outcome.deleted_count if outcome.status == DeletionStatus.COMPLETED else outcome.matched,
            dry_run=dry_run,
            error=None if outcome.succeeded else (outcome.message or "; ".join(outcome.errors)),
        )
        return outcome

    def _run(
        self,
        filter: str,
        dry_run: bool,
        max_deletions: int,
        require_confirmation: bool,
        include_spam_trash: bool,
        confirmation_token: Optional[str],
    ) -> DeletionOutcome:
        # Requested -> Counted
        try:
            result = self.engine.search(
                filter,
                max_results=max_deletions + 1,
                include_spam_trash=include_spam_trash,
            )
        except GatewayError as e:
            logger.error(f"Counting messages for {filter!r} failed: {e}")
            return DeletionOutcome(
                DeletionStatus.FAILED,
                filter,
                max_deletions=max_deletions,
                errors=[str(e)],
                message=f"Could not search mailbox: {e}",
            )

        # Includes ids whose metadata fetch failed; deletion needs only ids
        matched = max(result.estimated_total, len(result.listed_ids))
        base = dict(filter=filter, matched=matched, max_deletions=max_deletions)

        if matched == 0:
            return DeletionOutcome(DeletionStatus.COMPLETED, **base)

        if matched > max_deletions:
            return DeletionOutcome(
                DeletionStatus.REJECTED_LIMIT,
                message=f"{matched} messages match, which exceeds the limit of {max_deletions}",
                **base,
            )

        if dry_run:
            ticket = self.tickets.issue(filter, result.listed_ids, include_spam_trash=include_spam_trash)
            return DeletionOutcome(
                DeletionStatus.DRY_RUN_ISSUED,
                ticket=ticket,
                preview=list(result.items[:PREVIEW_SIZE]),
                **base,
            )

        ids = list(result.listed_ids)
        if require_confirmation:
            if not confirmation_token:
                return DeletionOutcome(
                    DeletionStatus.CONFIRMATION_REQUIRED,
                    preview=list(result.items[:PREVIEW_SIZE]),
                    message="confirmation required",
                    **base,
                )

            redemption = self.tickets.redeem(
                confirmation_token, filter, include_spam_trash=include_spam_trash
            )
            if redemption.status == RedeemStatus.EXPIRED:
                return DeletionOutcome(DeletionStatus.EXPIRED_TICKET, message=redemption.reason, **base)
            if redemption.status == RedeemStatus.INVALID:
                return DeletionOutcome(DeletionStatus.INVALID_TICKET, message=redemption.reason, **base)

            # Only what was confirmed and still matches
            still_matching = set(ids)
            ids = [i for i in redemption.ticket.item_ids if i in still_matching]

        return self._execute(ids, base)

    def _execute(self, ids: list[str], base: dict) -> DeletionOutcome:
        """Executing -> Completed."""
        logger.info(f"Deleting {len(ids)} messages matching {base['filter']!r}")

        def worker(batch: list[str]) -> int:
            self.retry.execute(lambda: self.gateway.batch_delete(batch))
            return len(batch)

        report = run_batches(
            ids,
            worker,
            batch_size=self.batch_size,
            pacing_delay=self.pacing_delay,
            sleep=self.sleep,
        )

        logger.info(f"Deleted {report.deleted_count}, failed {report.failed_count} in {report.batches} batches")

        return DeletionOutcome(
            DeletionStatus.COMPLETED,
            deleted_count=report.deleted_count,
            failed_count=report.failed_count,
            errors=report.errors,
            message="" if not report.errors else f"{report.failed_count} messages could not be deleted",
            **base,
        )
