"""
shamela-mirror CLI - Sync commands.

Bring the local master dataset or a single book up to date with the
remote patch API.
"""

import asyncio
from typing import Annotated

import typer
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from shamela_mirror.cli import common
from shamela_mirror.cli.common import console, handle_error
from shamela_mirror.core.sync.models import SyncResult

app = typer.Typer(
    name="sync",
    help="Sync the local mirror with the remote library",
    no_args_is_help=True,
)


async def _sync_master() -> SyncResult:
    async with common.get_service(common.get_config()) as mirror:
        return await mirror.orchestrator.sync_master()


async def _sync_book(book_id: int) -> SyncResult:
    async with common.get_service(common.get_config()) as mirror:
        return await mirror.orchestrator.sync_book(book_id)


def show_result(result: SyncResult) -> None:
    """Render a sync result as a summary panel plus a per-table breakdown."""
    console.print()
    if result.updated:
        indicator = Text("✓", style="bold green")
        border = "green"
    else:
        indicator = Text("=", style="bold blue")
        border = "blue"

    summary = result.summary()
    if result.duration_seconds is not None:
        summary += f" in {result.duration_seconds:.2f}s"
    console.print(Panel(Text(summary), title=indicator, border_style=border, expand=False))

    if not result.table_counts:
        return

    table = Table(title="Tables", box=None)
    table.add_column("Table", style="cyan", no_wrap=True)
    table.add_column("Patch records", justify="right", style="blue")
    table.add_column("Records", justify="right", style="bold")
    for name, count in result.table_counts.items():
        table.add_row(name, str(result.patch_records.get(name, 0)), str(count))

    console.print()
    console.print(table)
    console.print()


@app.command()
def master() -> None:
    """
    Sync the master catalog (categories, authors, books).

    Examples:
        shamela-mirror sync master
        shamela-mirror --debug sync master
    """
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Syncing master catalog...", total=None)
            result = asyncio.run(_sync_master())
    except Exception as e:
        handle_error(e, "sync master")
        raise typer.Exit(1)

    show_result(result)


@app.command()
def book(
    book_id: Annotated[int, typer.Argument(help="Remote id of the book")],
) -> None:
    """
    Download or update one book's pages and outline.

    Examples:
        shamela-mirror sync book 6387
    """
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Syncing book {book_id}...", total=None)
            result = asyncio.run(_sync_book(book_id))
    except Exception as e:
        handle_error(e, "sync book")
        raise typer.Exit(1)

    show_result(result)
