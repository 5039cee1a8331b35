from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from lastnote import store
from lastnote.config import Settings
from lastnote.db import init_db
from lastnote.models import utcnow
from lastnote.periods import days_since
from lastnote.services.delivery import DirectDeliveryClient
from lastnote.services.email import EmailSender
from lastnote.services.evaluator import Decision, evaluate
from lastnote.services.sweep import DeliverySweep

app = typer.Typer(help="My Last Note - check-in and delivery service")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the web server."""
    import uvicorn

    uvicorn.run("lastnote.web:create_app", host=host, port=port, reload=reload, factory=True)


@app.command()
def sweep() -> None:
    """Run one delivery sweep in-process and show what it did."""
    settings = Settings.from_env()
    init_db(settings.db_path)
    emails = EmailSender(settings)
    runner = DeliverySweep(settings, emails, DirectDeliveryClient(settings, emails))
    report = asyncio.run(runner.run())

    console.print(f"[bold]{report.to_dict()['message']}[/bold]")
    if not report.deliveries and not report.reminders:
        console.print("[green]Nothing to deliver or remind.[/green]")
        return

    if report.deliveries:
        table = Table(title="Delivered Notes")
        table.add_column("Note", style="cyan")
        table.add_column("User", style="dim")
        table.add_column("Days Since Check-in", style="yellow")
        for d in report.deliveries:
            table.add_row(d["noteId"], str(d["userId"]), str(d["daysSinceCheckIn"]))
        console.print(table)

    if report.reminders:
        table = Table(title="Reminders Sent")
        table.add_column("Email", style="cyan")
        table.add_column("Note", style="dim")
        table.add_column("Days Remaining", style="yellow")
        for r in report.reminders:
            table.add_row(r["email"], r["noteId"], str(r["daysRemaining"]))
        console.print(table)


@app.command()
def status() -> None:
    """Show every pending note and what the next sweep would do with it."""
    settings = Settings.from_env()
    init_db(settings.db_path)
    now = utcnow()

    table = Table(title="Pending Notes")
    table.add_column("User", style="cyan")
    table.add_column("Note", style="white")
    table.add_column("Trigger", style="magenta")
    table.add_column("Period", style="dim")
    table.add_column("Days Since Check-in", style="yellow")
    table.add_column("Next Sweep", style="bold")

    rows = 0
    for user in store.find_sweep_users(settings.db_path):
        days = days_since(user.last_check_in, now)
        for note in store.find_pending_notes(settings.db_path, user.id):
            evaluation = evaluate(days, note.check_in_period, note.delivery_trigger)
            if evaluation.decision is Decision.REMIND:
                outcome = f"remind ({evaluation.days_remaining}d left)"
            else:
                outcome = evaluation.decision.value
            table.add_row(
                user.email,
                note.title or note.note_id,
                note.delivery_trigger.value,
                note.check_in_period or "—",
                str(days),
                outcome,
            )
            rows += 1

    if not rows:
        console.print("[green]No pending notes.[/green]")
        return
    console.print(table)
