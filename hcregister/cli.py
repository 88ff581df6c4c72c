"""HC Register CLI.

Commands:
- init-db: Create the backend tables
- serve: Run the shared-state backend (FastAPI)
- import-csv: Bulk upload records from CSV into the local register
- export-xlsx: Write the Excel workbook of the local register
- export-backup / merge-backup: Portable .hcf backups
- eval: Evaluate a quantity expression
- dashboard: Batch and status roll-ups
- pull / push: Sync the local register with the shared backend
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from hcregister.boq.expression import parse_quantity
from hcregister.boq.master import get_master
from hcregister.config import get_config
from hcregister.core.logging import configure_logging
from hcregister.db.connection import close_db, init_db
from hcregister.exceptions import ExportError, ExpressionError
from hcregister.ingestion.csv_import import read_records_csv
from hcregister.models import User
from hcregister.register.operations import add_records
from hcregister.reporting.dashboard import summarize
from hcregister.reporting.excel_export import export_filename, export_records_xlsx
from hcregister.reporting.formatting import format_currency
from hcregister.store.local_cache import LocalCache
from hcregister.sync.backend import BackendClient
from hcregister.sync.channel import EventBus
from hcregister.sync.session import SyncSession

app = typer.Typer(
    name="hcregister",
    help="HC Register - house connection register with BOQ costing",
    no_args_is_help=True,
)

console = Console()


def _backend() -> BackendClient:
    config = get_config()
    if not config.backend.url:
        console.print("[bold red]✗[/bold red] BACKEND_URL is not set")
        raise typer.Exit(code=1)
    return BackendClient(config.backend)


def _with_session(user: str, work: Callable[[SyncSession], Awaitable[None]]) -> None:
    """Run ``work`` inside a short-lived local session (no backend, private bus)."""

    async def _run():
        session = SyncSession(
            cache=LocalCache(),
            bus=EventBus(),
            notify=lambda message: console.print(message),
        )
        await session.login(User.mock_login(user))
        try:
            await work(session)
        finally:
            await session.logout()

    asyncio.run(_run())


@app.command(name="init-db")
def init_db_cmd():
    """Create the backend tables."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.backend.database_url}")

    async def _init():
        await init_db()
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the shared-state backend."""
    import uvicorn

    typer.echo(f"Starting HC Register backend on http://{host}:{port}")
    uvicorn.run("hcregister.web.app:app", host=host, port=port, reload=reload, workers=1)


@app.command(name="import-csv")
def import_csv(
    file: Path = typer.Argument(..., help="CSV file with one record per row"),
    list_no: str | None = typer.Option(None, "--list", help="Target batch (overrides the list column)"),
    user: str = typer.Option("cli", "--user", help="User recorded in the activity log"),
):
    """Bulk upload records from CSV."""
    try:
        new_records = read_records_csv(file, target_list=list_no)
    except FileNotFoundError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)

    async def _import(session: SyncSession):
        await session.apply(add_records(session.store.records, new_records, file.name))

    _with_session(user, _import)
    console.print(f"[bold green]✓[/bold green] {len(new_records)} records imported from {file.name}")


@app.command(name="export-xlsx")
def export_xlsx(
    output: Path | None = typer.Option(None, "--out", "-o", help="Output .xlsx path"),
    ids: list[str] | None = typer.Option(None, "--id", help="Record id to include (repeatable)"),
):
    """Export the local register to an Excel workbook."""
    records = LocalCache().load_records()
    try:
        data = export_records_xlsx(records, get_master(), selected_ids=ids or None)
    except ExportError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)

    path = output or Path(export_filename())
    path.write_bytes(data.getvalue())
    console.print(f"[bold green]✓[/bold green] Workbook written to {path}")


@app.command(name="export-backup")
def export_backup(
    output: Path | None = typer.Option(None, "--out", "-o", help="Output .hcf path"),
    user: str = typer.Option("cli", "--user", help="Recorded as exportedBy"),
):
    """Write a portable backup of the local register."""
    written: list[Path] = []

    async def _export(session: SyncSession):
        filename, text = session.export_backup()
        path = output or Path(filename)
        path.write_text(text, encoding="utf-8")
        written.append(path)

    _with_session(user, _export)
    console.print(f"[bold green]✓[/bold green] Backup written to {written[0]}")


@app.command(name="merge-backup")
def merge_backup(
    file: Path = typer.Argument(..., help="Backup file (.hcf)"),
    user: str = typer.Option("cli", "--user", help="User recorded in the activity log"),
):
    """Merge a portable backup into the local register."""
    if not file.exists():
        console.print(f"[bold red]✗[/bold red] Backup not found: {file}")
        raise typer.Exit(code=1)
    text = file.read_text(encoding="utf-8")

    async def _merge(session: SyncSession):
        await session.import_backup(text, source_name=file.name)

    _with_session(user, _merge)


@app.command(name="eval")
def eval_cmd(expression: str = typer.Argument(..., help="Quantity expression, e.g. 3x4+2")):
    """Evaluate a quantity expression."""
    try:
        value = parse_quantity(expression)
    except ExpressionError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)
    console.print(f"{value:g}")


@app.command()
def dashboard():
    """Show batch and status roll-ups of the local register."""
    summary = summarize(LocalCache().load_records())

    table = Table(title="List Operational Status")
    for header in ("List", "Total", "Surveyed", "Feasible", "Drawings", "Estimated", "Estimate", "Over", "Claimed", "Certified"):
        table.add_column(header, justify="left" if header == "List" else "right")
    for batch in [*summary.batches, summary.grand_total]:
        table.add_row(
            batch.name,
            str(batch.total),
            str(batch.surveyed),
            str(batch.feasible),
            str(batch.drawings),
            str(batch.estimated),
            format_currency(batch.est_amount),
            format_currency(batch.over_amount),
            format_currency(batch.claim_amount),
            format_currency(batch.cert_amount),
        )
    console.print(table)

    for title, rows in (("Status of Works", summary.works), ("Overbudget Status", summary.overbudget)):
        status_table = Table(title=title)
        status_table.add_column("Status")
        status_table.add_column("Records", justify="right")
        status_table.add_column("Amount", justify="right")
        for row in rows:
            status_table.add_row(f"{row.label} ({row.column})", str(row.count), format_currency(row.amount))
        console.print(status_table)


@app.command()
def pull():
    """Replace the local register with the shared backend document."""
    backend = _backend()

    async def _pull() -> bool:
        session = SyncSession(cache=LocalCache(), backend=backend)
        return await session.sync_from_backend()

    if asyncio.run(_pull()):
        console.print("[bold green]✓[/bold green] Local register updated from backend")
    else:
        console.print("[yellow]⚠[/yellow] No shared data yet; local register unchanged")


@app.command()
def push():
    """Save the local register to the shared backend."""
    backend = _backend()
    cache = LocalCache()
    results: list[bool] = []

    async def _push():
        session = SyncSession(cache=cache, backend=backend, notify=lambda message: console.print(message))
        session.store.replace(cache.load_records(), cache.load_activities())
        results.append(await session.save_to_backend())

    asyncio.run(_push())
    if not results[0]:
        raise typer.Exit(code=1)


@app.callback()
def main():
    configure_logging()


if __name__ == "__main__":
    app()
