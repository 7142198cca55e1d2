"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from mailsweep.config import DEFAULT_TRUSTED_DOMAINS, Settings
from mailsweep.deletion import InMemoryTicketStore, SqliteTicketStore
from mailsweep.service import build_ticket_store

ENV_VARS = [
    "AUDIT_LOG_PATH",
    "TICKET_STORE",
    "TICKET_DB_PATH",
    "BATCH_SIZE",
    "PACING_DELAY_MS",
    "MAX_RETRIES",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "TICKET_TTL_SECONDS",
    "TRUSTED_UNSUBSCRIBE_DOMAINS",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()

    assert settings == Settings()
    assert settings.batch_size == 50
    assert settings.pacing_delay == 2.0
    assert settings.max_retries == 3
    assert settings.ticket_ttl == 300.0
    assert settings.trusted_domains == DEFAULT_TRUSTED_DOMAINS


def test_overrides(clean_env, tmp_path):
    clean_env.setenv("AUDIT_LOG_PATH", str(tmp_path / "a.jsonl"))
    clean_env.setenv("TICKET_STORE", "Memory")
    clean_env.setenv("BATCH_SIZE", "25")
    clean_env.setenv("PACING_DELAY_MS", "500")
    clean_env.setenv("MAX_RETRIES", "5")
    clean_env.setenv("TICKET_TTL_SECONDS", "60")
    clean_env.setenv("TRUSTED_UNSUBSCRIBE_DOMAINS", " Sendgrid.net, ,mailchimp.com ")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.audit_log_path == Path(tmp_path / "a.jsonl")
    assert settings.ticket_store == "memory"
    assert settings.batch_size == 25
    assert settings.pacing_delay == 0.5
    assert settings.max_retries == 5
    assert settings.ticket_ttl == 60.0
    assert settings.trusted_domains == ("sendgrid.net", "mailchimp.com")
    assert settings.log_level == "DEBUG"


def test_invalid_number(clean_env):
    clean_env.setenv("BATCH_SIZE", "lots")

    with pytest.raises(ValueError):
        Settings.from_env()


def test_ticket_store_selection(tmp_path):
    assert isinstance(build_ticket_store(Settings(ticket_store="memory")), InMemoryTicketStore)

    store = build_ticket_store(Settings(ticket_db_path=tmp_path / "t.db"))
    assert isinstance(store, SqliteTicketStore)
    assert (tmp_path / "t.db").exists()
