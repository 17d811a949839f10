"""TaskForce CLI - inspect and edit the ticket board from a terminal.

Commands:
- board: Display every ticket grouped by column
- create: Create a ticket
- show: Show one ticket with its activity log
- move: Change a ticket's status (claims on in_progress)
- log: Append an activity log entry
- delete: Delete a ticket and its log
- stats: Print dashboard counts
- serve: Run the HTTP API

Every command builds the store for the backend selected by TASKFORCE_*
environment variables and uses asyncio.run() for the async store calls.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from taskforce.config import Settings
from taskforce.errors import KanbanError, TicketNotFoundError
from taskforce.factory import create_ticket_store
from taskforce.logging_config import configure_logging
from taskforce.store import TicketStore
from taskforce.types import STATUSES, LogType, TicketPriority, TicketStatus

app = typer.Typer(
    name="taskforce",
    help="Shared Kanban board for agents and operators",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

PRIORITY_STYLES = {
    TicketPriority.HIGH: "red",
    TicketPriority.MEDIUM: "yellow",
    TicketPriority.LOW: "dim",
}


def _run(action: Callable[[TicketStore], Awaitable[T]]) -> T:
    """Run an async store action, mapping store errors to exit codes."""
    settings = Settings()
    configure_logging(settings.log_level)

    async def _with_store() -> T:
        store = create_ticket_store(settings)
        try:
            return await action(store)
        finally:
            await store.aclose()

    try:
        return asyncio.run(_with_store())
    except TicketNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except KanbanError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)


@app.command("board")
def board(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show every ticket grouped by column."""
    tickets = _run(lambda store: store.get_all_tickets())

    if json_output:
        print(json.dumps([t.to_dict() for t in tickets], indent=2))
        return

    table = Table(title="TaskForce Kanban")
    table.add_column("ID", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Priority")
    table.add_column("Title")
    table.add_column("Assignee")
    table.add_column("Labels")

    for status in STATUSES:
        for t in (t for t in tickets if t.status == status):
            style = PRIORITY_STYLES[t.priority]
            table.add_row(
                t.id,
                t.status.value,
                f"[{style}]{t.priority.value}[/{style}]",
                t.title,
                t.assignee or "-",
                ", ".join(t.labels),
            )

    console.print(table)


@app.command("create")
def create(
    title: str = typer.Argument(..., help="Short task title"),
    description: str = typer.Option("", "--description", "-d", help="Detailed description"),
    priority: TicketPriority = typer.Option(TicketPriority.MEDIUM, "--priority", "-p"),
    label: list[str] = typer.Option([], "--label", "-l", help="Label (repeatable)"),
    assignee: str = typer.Option(None, "--assignee", "-a", help="Agent to pre-assign"),
) -> None:
    """Create a ticket in the todo column."""
    fields = {
        "title": title,
        "description": description,
        "priority": priority.value,
        "labels": label,
        "assignee": assignee,
    }
    ticket = _run(lambda store: store.create_ticket(fields))
    console.print(f"Created [cyan]{ticket.id}[/cyan]: {ticket.title}")


@app.command("show")
def show(
    ticket_id: str = typer.Argument(..., help="Ticket ID to show"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show ticket details and its activity log."""

    async def _load(store: TicketStore):
        ticket = await store.get_ticket_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket, await store.get_activity_log(ticket_id)

    ticket, log = _run(_load)

    if json_output:
        print(json.dumps({"ticket": ticket.to_dict(), "log": log}, indent=2))
        return

    metadata = f"""[bold]Status:[/bold] {ticket.status.value}
[bold]Priority:[/bold] {ticket.priority.value}
[bold]Assignee:[/bold] {ticket.assignee or 'unassigned'}
[bold]Labels:[/bold] {', '.join(ticket.labels) or '-'}
[bold]Depends on:[/bold] {', '.join(ticket.dependencies) or '-'}
[bold]Created:[/bold] {ticket.created_at}
[bold]Updated:[/bold] {ticket.updated_at}"""

    console.print(Panel(metadata, title=f"{ticket.id}: {ticket.title}", border_style="cyan"))
    if ticket.description:
        console.print(ticket.description)
    console.print()
    if log:
        console.print(Panel(Markdown(log), title="Activity log", border_style="green"))
    else:
        console.print("[yellow]No activity yet[/yellow]")


@app.command("move")
def move(
    ticket_id: str = typer.Argument(..., help="Ticket ID to move"),
    status: TicketStatus = typer.Argument(..., help="New status"),
    agent: str = typer.Option(None, "--agent", "-a", help="Agent doing the move"),
    message: str = typer.Option(None, "--message", "-m", help="Extra log message"),
) -> None:
    """Change a ticket's status. Moving to in_progress claims it for --agent."""
    changes: dict = {"status": status.value}
    if agent and status is TicketStatus.IN_PROGRESS:
        changes["assignee"] = agent
    log = {"agent": agent, "message": message}

    ticket = _run(lambda store: store.update_ticket(ticket_id, changes, log))
    console.print(f"[cyan]{ticket.id}[/cyan] is now [green]{ticket.status.value}[/green]")


@app.command("log")
def log_entry(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    agent: str = typer.Option(..., "--agent", "-a", help="Agent name"),
    message: str = typer.Option(..., "--message", "-m", help="Log message"),
    log_type: LogType = typer.Option(LogType.UPDATE, "--type", "-t", help="Entry type"),
    details: str = typer.Option(None, "--details", help="Extra details"),
) -> None:
    """Append an activity log entry."""
    _run(
        lambda store: store.append_activity_log(
            ticket_id, agent, log_type.value, message, details
        )
    )
    console.print(f"Logged {log_type.value} on [cyan]{ticket_id}[/cyan]")


@app.command("delete")
def delete(
    ticket_id: str = typer.Argument(..., help="Ticket ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a ticket and its activity log."""
    if not yes:
        typer.confirm(f"Delete {ticket_id} and its activity log?", abort=True)
    _run(lambda store: store.delete_ticket(ticket_id))
    console.print(f"Deleted [cyan]{ticket_id}[/cyan]")


@app.command("stats")
def stats(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Print dashboard counts."""
    result = _run(lambda store: store.get_dashboard_stats())
    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return
    console.print(
        f"Total: {result.total} | Todo: {result.todo} | "
        f"In Progress: {result.in_progress} | Done: {result.done}"
    )
    console.print(f"Agents: {', '.join(result.agents) or '-'}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(3000, help="Port to bind to"),
) -> None:
    """Serve the HTTP API."""
    from taskforce.main import run

    run(host=host, port=port)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
