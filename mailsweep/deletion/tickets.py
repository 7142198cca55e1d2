"""Single-use confirmation tickets for destructive operations."""

import json
import logging
import secrets
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Generator, Optional

logger = logging.getLogger(__name__)

DEFAULT_TICKET_TTL = 300.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConfirmationTicket:
    """Binds a matched item set to a later confirmed delete."""

    token: str
    filter: str
    item_ids: tuple[str, ...]
    issued_at: datetime
    expires_at: datetime
    include_spam_trash: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class TicketStore(ABC):
    """Keyed storage for outstanding tickets."""

    @abstractmethod
    def put(self, ticket: ConfirmationTicket) -> None:
        """Store ``ticket`` under its token."""

    @abstractmethod
    def get(self, token: str) -> Optional[ConfirmationTicket]:
        """Look up a ticket without consuming it."""

    @abstractmethod
    def delete(self, token: str) -> bool:
        """Remove a ticket; True if it was present."""

    @abstractmethod
    def pop(self, token: str) -> Optional[ConfirmationTicket]:
        """Atomically remove and return a ticket. At most one caller wins."""

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        """Drop every ticket that expired before ``now``."""


class InMemoryTicketStore(TicketStore):
    """Ticket store backed by a dict guarded by a lock."""

    def __init__(self):
        self._tickets: dict[str, ConfirmationTicket] = {}
        self._lock = threading.Lock()

    def put(self, ticket: ConfirmationTicket) -> None:
        with self._lock:
            self._tickets[ticket.token] = ticket

    def get(self, token: str) -> Optional[ConfirmationTicket]:
        with self._lock:
            return self._tickets.get(token)

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._tickets.pop(token, None) is not None

    def pop(self, token: str) -> Optional[ConfirmationTicket]:
        with self._lock:
            return self._tickets.pop(token, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [t for t, ticket in self._tickets.items() if ticket.is_expired(now)]
            for token in expired:
                del self._tickets[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tickets)


class SqliteTicketStore(TicketStore):
    """Ticket store that survives server restarts."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tickets (
                    token TEXT PRIMARY KEY,
                    filter TEXT NOT NULL,
                    include_spam_trash INTEGER NOT NULL,
                    item_ids TEXT NOT NULL,
                    issued_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with context management."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _from_row(row: sqlite3.Row) -> ConfirmationTicket:
        return ConfirmationTicket(
            token=row["token"],
            filter=row["filter"],
            include_spam_trash=bool(row["include_spam_trash"]),
            item_ids=tuple(json.loads(row["item_ids"])),
            issued_at=datetime.fromisoformat(row["issued_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def put(self, ticket: ConfirmationTicket) -> None:
        with self._lock, self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO tickets
                (token, filter, include_spam_trash, item_ids, issued_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    ticket.token,
                    ticket.filter,
                    1 if ticket.include_spam_trash else 0,
                    json.dumps(list(ticket.item_ids)),
                    ticket.issued_at.isoformat(),
                    ticket.expires_at.isoformat(),
                ),
            )
            conn.commit()

    def get(self, token: str) -> Optional[ConfirmationTicket]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM tickets WHERE token = ?", (token,)).fetchone()
            return self._from_row(row) if row else None

    def delete(self, token: str) -> bool:
        with self._lock, self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM tickets WHERE token = ?", (token,))
            conn.commit()
            return cursor.rowcount > 0

    def pop(self, token: str) -> Optional[ConfirmationTicket]:
        with self._lock, self._get_connection() as conn:
            row = conn.execute("SELECT * FROM tickets WHERE token = ?", (token,)).fetchone()
            if row is None:
                return None
            cursor = conn.execute("DELETE FROM tickets WHERE token = ?", (token,))
            conn.commit()
            # another process consumed it between the select and the delete
            if cursor.rowcount == 0:
                return None
            return self._from_row(row)

    def purge_expired(self, now: datetime) -> int:
        with self._lock, self._get_connection() as conn:
            rows = conn.execute("SELECT token, expires_at FROM tickets").fetchall()
            expired = [
                row["token"]
                for row in rows
                if datetime.fromisoformat(row["expires_at"]) < now
            ]
            for token in expired:
                conn.execute("DELETE FROM tickets WHERE token = ?", (token,))
            conn.commit()
        return len(expired)


class RedeemStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Redemption:
    status: RedeemStatus
    ticket: Optional[ConfirmationTicket] = None
    reason: str = ""


class TicketBook:
    """Issues and redeems tickets against a TicketStore."""

    def __init__(
        self,
        store: TicketStore,
        ttl: float = DEFAULT_TICKET_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl = timedelta(seconds=ttl)
        self.clock = clock

    def issue(
        self,
        filter: str,
        item_ids: list[str],
        include_spam_trash: bool = False,
    ) -> ConfirmationTicket:
        """Create and store a ticket for ``item_ids`` valid for the TTL."""
        now = self.clock()
        self.store.purge_expired(now)
        ticket = ConfirmationTicket(
            token=secrets.token_urlsafe(24),
            filter=filter,
            include_spam_trash=include_spam_trash,
            item_ids=tuple(item_ids),
            issued_at=now,
            expires_at=now + self.ttl,
        )
        self.store.put(ticket)
        logger.info(f"Issued confirmation ticket for {len(item_ids)} items, expires {ticket.expires_at.isoformat()}")
        return ticket

    def redeem(
        self, token: str, filter: str, include_spam_trash: bool = False
    ) -> Redemption:
        """
        Consume the ticket for ``token``.

        The ticket leaves the store on every redemption attempt, so it can be
        used at most once; an expired or mismatched ticket is evicted too.
        """
        ticket = self.store.pop(token)
        if ticket is None:
            return Redemption(RedeemStatus.INVALID, reason="unknown or already used token")

        if ticket.is_expired(self.clock()):
            return Redemption(
                RedeemStatus.EXPIRED,
                ticket=ticket,
                reason=f"ticket expired at {ticket.expires_at.isoformat()}",
            )

        if ticket.filter != filter or ticket.include_spam_trash != include_spam_trash:
            return Redemption(
                RedeemStatus.INVALID,
                ticket=ticket,
                reason=f"ticket was issued for query {ticket.filter!r}",
            )

        return Redemption(RedeemStatus.VALID, ticket=ticket)
