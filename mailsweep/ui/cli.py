"""Rich-based CLI output formatting."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mailsweep.audit import AuditRecord

# stdout belongs to the MCP stdio transport when serving
console = Console(stderr=True)


def print_header(title: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(title, style="bold blue"))
    console.print()


def _mark(symbol: str, style: str, message: str) -> None:
    console.print(f"[{style}]{symbol}[/{style}] {message}", highlight=False)


def print_success(message: str) -> None:
    _mark("✓", "green", message)


def print_error(message: str) -> None:
    _mark("✗", "red", message)


def print_warning(message: str) -> None:
    _mark("!", "yellow", message)


def print_info(message: str) -> None:
    _mark("i", "blue", message)


def print_audit_records(records: list[AuditRecord]) -> None:
    """Print audit records as a table, oldest first."""
    table = Table(title="Operation Log")
    table.add_column("Time", style="dim")
    table.add_column("Operation", style="cyan")
    table.add_column("Query", max_width=40)
    table.add_column("Items", justify="right")
    table.add_column("Dry Run", justify="center")
    table.add_column("Result")

    for record in records:
        if record.succeeded:
            result = "[green]ok[/green]"
        else:
            result = f"[red]{record.error or 'failed'}[/red]"

        table.add_row(
            record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            record.operation.value,
            record.filter or "",
            "" if record.item_count is None else str(record.item_count),
            "yes" if record.dry_run else "",
            result,
        )

    console.print(table)


def confirm_action(message: str) -> bool:
    """Ask a yes/no question on the console; anything but yes is no."""
    answer = console.input(f"{message} [y/N]: ")
    return answer.strip().lower() in ("y", "yes")
