"""CLI entrypoint for mailsweep."""

import logging

import click
from dotenv import load_dotenv

from mailsweep import __version__
from mailsweep.audit import JsonlAuditLog
from mailsweep.config import Settings
from mailsweep.errors import AuthError
from mailsweep.ui.cli import (
    confirm_action,
    print_audit_records,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)

# Load environment variables
load_dotenv()


def configure_logging(level: str) -> None:
    """Log to stderr; stdout carries the MCP stdio stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.version_option(version=__version__)
def cli():
    """mailsweep - safe bulk Gmail cleanup over MCP."""
    configure_logging(Settings.from_env().log_level)


@cli.command()
def serve():
    """Run the MCP server on stdio."""
    from mailsweep.server import get_service, mcp

    try:
        get_service()
    except AuthError as e:
        print_error(str(e))
        raise SystemExit(1)

    mcp.run()


@cli.command()
def auth():
    """Authenticate with Gmail (or re-authenticate)."""
    print_header("Gmail Authentication")

    from mailsweep.auth import (
        DELETE_SCOPE,
        TokenStore,
        get_gmail_service,
        has_required_scope,
        revoke_credentials,
    )

    existing = TokenStore().load()
    if existing and existing.valid and has_required_scope(existing):
        if confirm_action("Already authenticated. Re-authenticate?"):
            revoke_credentials()
        else:
            print_info("Keeping existing authentication")
            return
    elif existing and not has_required_scope(existing):
        print_warning(f"Stored token lacks {DELETE_SCOPE}; deletion needs it")

    print_info("Opening browser for Google authentication...")

    try:
        service = get_gmail_service()
        profile = service.users().getProfile(userId="me").execute()
        print_success(f"Authenticated as {profile.get('emailAddress')}")
    except AuthError as e:
        print_error(str(e))


@cli.command()
def revoke():
    """Revoke and delete the stored Gmail token."""
    from mailsweep.auth import revoke_credentials

    if not confirm_action("Revoke stored Gmail credentials?"):
        print_info("Cancelled")
        return

    if revoke_credentials():
        print_success("Credentials revoked")
    else:
        print_info("No stored credentials")


@cli.command()
@click.option("--limit", default=20, help="Number of most recent records to show")
def audit(limit: int):
    """Show recent entries of the operation audit log."""
    settings = Settings.from_env()
    records = JsonlAuditLog(settings.audit_log_path).read(limit=limit)

    if not records:
        print_info(f"No operations recorded in {settings.audit_log_path}")
        return

    print_audit_records(records)


if __name__ == "__main__":
    cli()
