"""Command-line interface for the notification dispatch service.

Manages the blacklist directly against the configured store and dispatches
notification payloads from a file, without going through the HTTP API.

Usage:
    notification-dispatch serve --port 8000
    notification-dispatch blacklist add bad@example.com
    notification-dispatch blacklist show bad@example.com
    notification-dispatch blacklist remove bad@example.com
    notification-dispatch blacklist list --json
    notification-dispatch dispatch event.json

Example:
    $ notification-dispatch --config /etc/nds/config.ini blacklist add User@Example.COM
    ✓ Blacklisted user@example.com
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from .admin import BlacklistAdminService
from .blacklist import create_blacklist_store
from .config_loader import ServiceSettings, load_settings
from .core import NotificationService
from .errors import InvalidEmail, StoreError
from .events import EventEnvelope
from .logger import configure_logging
from .models import DispatchOutcome

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def _settings(ctx: click.Context) -> ServiceSettings:
    return ctx.obj["settings"]


def _admin_for(settings: ServiceSettings) -> BlacklistAdminService:
    store = create_blacklist_store(
        settings.store_backend,
        db_path=settings.db_path,
        table_name=settings.dynamodb_table,
        region=settings.aws_region,
    )
    return BlacklistAdminService(store)


def _run_admin(settings: ServiceSettings, operation):
    """Run ``operation(admin)`` against an initialised store, closing it afterwards."""
    admin = _admin_for(settings)

    async def _run():
        await admin.store.init()
        try:
            return await operation(admin)
        finally:
            await admin.store.close()

    return run_async(_run())


def envelopes_from_payloads(items: list[Any]) -> list[EventEnvelope]:
    """Wrap raw message payloads read from a file into envelopes."""
    envelopes = []
    for position, item in enumerate(items):
        body = item if isinstance(item, str) else json.dumps(item)
        envelopes.append(EventEnvelope(record_id=f"file-{position}", body=body))
    return envelopes


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="NDS_CONFIG",
    default=None,
    help="Path to config.ini (default: $NDS_CONFIG or config.ini).",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """Notification dispatch service - blacklist administration and dispatch."""
    settings = load_settings(config_path)
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@main.command("serve")
@click.option("--host", default=None, help="Listen address (default: from config).")
@click.option("--port", type=int, default=None, help="Listen port (default: from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP API (and the SQS poll loop when configured)."""
    import uvicorn

    from .server import build_app

    settings = _settings(ctx)
    host = host or settings.http_host
    port = port or settings.http_port

    console.print("\n[bold cyan]Starting notification dispatch service[/bold cyan]")
    console.print(f"  Store:   {settings.store_backend}")
    console.print(f"  Sender:  {settings.sender_backend}")
    console.print(f"  Queue:   {settings.sqs_queue_url or '-'}")
    console.print(f"  Listen:  {host}:{port}")
    console.print()

    uvicorn.run(build_app(settings), host=host, port=port, log_level=settings.log_level.lower())


# ============================================================================
# Blacklist commands
# ============================================================================

@main.group("blacklist")
def blacklist() -> None:
    """Manage blacklisted addresses."""


@blacklist.command("add")
@click.argument("email")
@click.pass_context
def blacklist_add(ctx: click.Context, email: str) -> None:
    """Add EMAIL to the blacklist."""
    try:
        entry = _run_admin(_settings(ctx), lambda admin: admin.add_to_blacklist(email))
    except InvalidEmail as exc:
        print_error(str(exc))
        sys.exit(2)
    except StoreError as exc:
        print_error(str(exc))
        sys.exit(1)
    print_success(f"Blacklisted {entry.email}")


@blacklist.command("show")
@click.argument("email")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def blacklist_show(ctx: click.Context, email: str, as_json: bool) -> None:
    """Show the blacklist entry for EMAIL."""
    try:
        entry = _run_admin(_settings(ctx), lambda admin: admin.get_entry(email))
    except (InvalidEmail, StoreError) as exc:
        print_error(str(exc))
        sys.exit(1)
    if entry is None:
        print_error(f"'{email}' is not blacklisted.")
        sys.exit(1)
    if as_json:
        print_json({"email": entry.email, "date": entry.date})
        return
    console.print(f"[cyan]{entry.email}[/cyan]  blacklisted at {entry.created_at.isoformat()}")


@blacklist.command("remove")
@click.argument("email")
@click.pass_context
def blacklist_remove(ctx: click.Context, email: str) -> None:
    """Remove EMAIL from the blacklist."""
    try:
        removed = _run_admin(_settings(ctx), lambda admin: admin.remove_from_blacklist(email))
    except (InvalidEmail, StoreError) as exc:
        print_error(str(exc))
        sys.exit(1)
    if not removed:
        print_error(f"'{email}' is not blacklisted.")
        sys.exit(1)
    print_success(f"Removed {email.strip().lower()}")


@blacklist.command("list")
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def blacklist_list(ctx: click.Context, limit: int, as_json: bool) -> None:
    """List blacklisted addresses, most recent first."""
    try:
        entries = _run_admin(_settings(ctx), lambda admin: admin.list_entries(limit))
    except StoreError as exc:
        print_error(str(exc))
        sys.exit(1)

    if as_json:
        print_json([{"email": entry.email, "date": entry.date} for entry in entries])
        return

    if not entries:
        console.print("[dim]No blacklisted addresses.[/dim]")
        return

    table = Table(title="Blacklist")
    table.add_column("Email", style="cyan")
    table.add_column("Added (UTC)")
    for entry in entries:
        table.add_row(entry.email, entry.created_at.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)


# ============================================================================
# Dispatch
# ============================================================================

def _print_outcomes(outcomes: list[DispatchOutcome]) -> None:
    table = Table(title="Dispatch outcomes")
    table.add_column("Record", style="cyan")
    table.add_column("Status")
    table.add_column("Delivery ID")
    table.add_column("Code")
    table.add_column("Reason")
    colors = {"sent": "green", "skipped": "yellow", "failed": "red"}
    for outcome in outcomes:
        color = colors[outcome.status]
        table.add_row(
            outcome.record_id or "-",
            f"[{color}]{outcome.status}[/{color}]",
            outcome.delivery_id or "-",
            outcome.error_code or "-",
            outcome.reason or "",
        )
    console.print(table)


@main.command("dispatch")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output outcomes as JSON.")
@click.pass_context
def dispatch(ctx: click.Context, file: Path, as_json: bool) -> None:
    """Dispatch the payloads in FILE.

    FILE holds either an SNS notification event (``{"Records": [...]}``) or
    a JSON list of raw message payloads.
    """
    try:
        document = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print_error(f"Cannot read {file}: {exc}")
        sys.exit(1)

    settings = _settings(ctx)
    try:
        service = NotificationService.from_settings(settings, event_source=None)
    except ValueError as exc:
        print_error(str(exc))
        sys.exit(1)

    async def _dispatch() -> list[DispatchOutcome]:
        await service.init()
        try:
            if isinstance(document, list):
                return await service.dispatch(envelopes_from_payloads(document))
            return await service.dispatch_sns_event(document)
        finally:
            await service.stop()

    outcomes = run_async(_dispatch())
    if as_json:
        print_json([outcome.model_dump() for outcome in outcomes])
    else:
        _print_outcomes(outcomes)
    if any(outcome.status == "failed" for outcome in outcomes):
        sys.exit(1)


if __name__ == "__main__":
    main()
