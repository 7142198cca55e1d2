"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_TRUSTED_DOMAINS = (
    "gmail.com",
    "google.com",
    "mailchimp.com",
    "constantcontact.com",
)


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Tunables for the query engine, deletion workflow and stores."""

    audit_log_path: Path = Path("./data/audit.jsonl")
    ticket_store: str = "sqlite"
    ticket_db_path: Path = Path("./data/tickets.db")
    batch_size: int = 50
    pacing_delay: float = 2.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0
    ticket_ttl: float = 300.0
    trusted_domains: tuple[str, ...] = field(default=DEFAULT_TRUSTED_DOMAINS)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Call ``dotenv.load_dotenv()`` first to pick up a ``.env`` file.
        """
        return cls(
            audit_log_path=Path(os.getenv("AUDIT_LOG_PATH", "./data/audit.jsonl")),
            ticket_store=os.getenv("TICKET_STORE", "sqlite").lower(),
            ticket_db_path=Path(os.getenv("TICKET_DB_PATH", "./data/tickets.db")),
            batch_size=_env_int("BATCH_SIZE", 50),
            pacing_delay=_env_int("PACING_DELAY_MS", 2000) / 1000.0,
            max_retries=_env_int("MAX_RETRIES", 3),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", 1.0),
            retry_max_delay=_env_float("RETRY_MAX_DELAY", 60.0),
            ticket_ttl=_env_float("TICKET_TTL_SECONDS", 300.0),
            trusted_domains=_env_list(
                "TRUSTED_UNSUBSCRIBE_DOMAINS", DEFAULT_TRUSTED_DOMAINS
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
