"""
Shared helpers for CLI commands: logging, error display and service wiring.
"""

import logging
import sys
import traceback

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from shamela_mirror.core.config import MirrorConfig, load_config
from shamela_mirror.core.exceptions import MirrorError
from shamela_mirror.core.library.catalog import LibraryCatalog
from shamela_mirror.core.service import MirrorService
from shamela_mirror.core.snapshot.store import FileSnapshotStore

console = Console()

# Global debug flag
_debug_mode = False


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging and full tracebacks
    """
    global _debug_mode
    _debug_mode = debug

    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def is_debug() -> bool:
    return _debug_mode


def handle_error(error: Exception, command_name: str) -> None:
    """
    Display an error with a user-friendly message.

    Mirror errors are shown with their context; anything else is reported
    as unexpected.

    Args:
        error: The exception that was raised
        command_name: Name of the command that failed
    """
    error_text = Text()
    if isinstance(error, MirrorError):
        error_text.append("Error: ", style="bold red")
        error_text.append(str(error))

        if error.context:
            error_text.append("\n\nContext:\n", style="dim")
            for key, value in error.context.items():
                error_text.append(f"  {key}: ", style="cyan")
                error_text.append(f"{value}\n", style="white")
        title = "[bold red]Error[/bold red]"
    else:
        error_text.append("Unexpected error in ", style="bold red")
        error_text.append(command_name, style="bold yellow")
        error_text.append(": ", style="bold red")
        error_text.append(str(error))
        title = "[bold red]Unexpected Error[/bold red]"

    console.print()
    console.print(Panel(error_text, title=title, border_style="red", expand=False))

    if _debug_mode:
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())

    console.print()
    if not _debug_mode:
        console.print("[dim]Run with --debug for full traceback[/dim]")
        console.print()


def get_config() -> MirrorConfig:
    """Configuration for the current project."""
    return load_config()


def get_service(config: MirrorConfig) -> MirrorService:
    """File-backed mirror service for the configured storage."""
    return MirrorService.from_config(config)


def get_catalog(config: MirrorConfig) -> LibraryCatalog:
    """Catalog over local snapshots; needs no network access."""
    return LibraryCatalog(FileSnapshotStore(config.storage.data_dir))
