"""
shamela-mirror CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from rich.console import Console

from shamela_mirror import __version__
from shamela_mirror.cli import library, serve, sync
from shamela_mirror.cli.common import setup_logging
from shamela_mirror.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_SYNC = "Sync"
PANEL_BROWSE = "Browse the Library"
PANEL_SERVE = "Serve"

# Create the main Typer app
app = typer.Typer(
    name="shamela-mirror",
    help="Incremental local mirror of the Shamela library",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"shamela-mirror version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    shamela-mirror - keep a local copy of the Shamela library up to date.

    Quick Start:
        1. export SHAMELA_API_KEY=...     # or put it in .env
        2. shamela-mirror sync master     # Fetch the catalog
        3. shamela-mirror books -s "..."  # Browse it
        4. shamela-mirror sync book 6387  # Download a book
        5. shamela-mirror serve           # Serve the HTTP API
    """
    # Load layered env files early so the API key is available to all commands.
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)

    # Store debug flag in context for subcommands
    ctx.obj = {"debug": debug}


app.add_typer(sync.app, name="sync", rich_help_panel=PANEL_SYNC)

app.command(name="books", rich_help_panel=PANEL_BROWSE)(library.books)
app.command(name="search", rich_help_panel=PANEL_BROWSE)(library.search)
app.command(name="outline", rich_help_panel=PANEL_BROWSE)(library.outline)
app.command(name="stats", rich_help_panel=PANEL_BROWSE)(library.stats)

app.command(name="serve", rich_help_panel=PANEL_SERVE)(serve.serve)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
