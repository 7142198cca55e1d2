"""Append-only audit trail of mailbox operations."""

from .log import (
    AuditLog,
    AuditRecord,
    InMemoryAuditLog,
    JsonlAuditLog,
    OperationKind,
)

__all__ = [
    "AuditLog",
    "AuditRecord",
    "InMemoryAuditLog",
    "JsonlAuditLog",
    "OperationKind",
]
