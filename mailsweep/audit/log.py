"""Audit records and the stores that persist them."""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    SEARCH = "search"
    COUNT = "count"
    DELETE = "delete"
    UNSUBSCRIBE_SCAN = "unsubscribe_scan"


@dataclass(frozen=True)
class AuditRecord:
    """One attempted operation and its outcome."""

    operation: OperationKind
    succeeded: bool
    filter: Optional[str] = None
    item_count: Optional[int] = None
    dry_run: bool = False
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["operation"] = self.operation.value
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditRecord":
        return cls(
            operation=OperationKind(data["operation"]),
            succeeded=bool(data["succeeded"]),
            filter=data.get("filter"),
            item_count=data.get("item_count"),
            dry_run=bool(data.get("dry_run", False)),
            error=data.get("error"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class AuditLog(ABC):
    """Append-only store of AuditRecords."""

    @abstractmethod
    def append(self, record: AuditRecord) -> None:
        """Persist ``record``; returns only once it is durable."""

    @abstractmethod
    def read(self, limit: Optional[int] = None) -> list[AuditRecord]:
        """Return records oldest first, or only the last ``limit`` of them."""

    def record(
        self,
        operation: OperationKind,
        succeeded: bool,
        filter: Optional[str] = None,
        item_count: Optional[int] = None,
        dry_run: bool = False,
        error: Optional[str] = None,
    ) -> AuditRecord:
        """Build a record stamped with the current time and append it."""
        entry = AuditRecord(
            operation=operation,
            succeeded=succeeded,
            filter=filter,
            item_count=item_count,
            dry_run=dry_run,
            error=error,
        )
        self.append(entry)
        return entry


class InMemoryAuditLog(AuditLog):
    """Process-local audit log, for tests."""

    def __init__(self):
        self._records: list[AuditRecord] = []
        self._lock = threading.Lock()

    def append(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    def read(self, limit: Optional[int] = None) -> list[AuditRecord]:
        with self._lock:
            records = list(self._records)
        return records[-limit:] if limit else records


class JsonlAuditLog(AuditLog):
    """Audit log stored as one JSON object per line, never rewritten."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, record: AuditRecord) -> None:
        line = json.dumps(record.to_dict(), sort_keys=True)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())

    def read(self, limit: Optional[int] = None) -> list[AuditRecord]:
        if not self.path.exists():
            return []

        with self._lock:
            with open(self.path, encoding="utf-8") as f:
                lines = f.readlines()

        records = []
        for number, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(AuditRecord.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed audit line {number} in {self.path}: {e}")

        return records[-limit:] if limit else records
