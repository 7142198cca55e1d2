"""Deletion module: batching, confirmation tickets and the safety workflow."""

from .scheduler import BatchReport, chunked, run_batches
from .tickets import (
    ConfirmationTicket,
    InMemoryTicketStore,
    RedeemStatus,
    SqliteTicketStore,
    TicketBook,
    TicketStore,
)
from .workflow import DeletionOutcome, DeletionStatus, DeletionWorkflow

__all__ = [
    "BatchReport",
    "ConfirmationTicket",
    "DeletionOutcome",
    "DeletionStatus",
    "DeletionWorkflow",
    "InMemoryTicketStore",
    "RedeemStatus",
    "SqliteTicketStore",
    "TicketBook",
    "TicketStore",
    "chunked",
    "run_batches",
]
