"""
shamela-mirror CLI - Serve command.

Run the HTTP API over the local mirror.
"""

from typing import Annotated

import typer
import uvicorn

from shamela_mirror.cli import common
from shamela_mirror.cli.common import console, handle_error
from shamela_mirror.core.api.app import create_app


def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Interface to bind (default: server.host)"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to listen on (default: server.port)"),
    ] = None,
) -> None:
    """
    Start the HTTP API server.

    Examples:
        shamela-mirror serve
        shamela-mirror serve --port 8080
    """
    try:
        config = common.get_config()
        bind_host = host or config.server.host
        bind_port = port or config.server.port
        app = create_app(config)
    except Exception as e:
        handle_error(e, "serve")
        raise typer.Exit(1)

    console.print(f"[bold green]Serving on http://{bind_host}:{bind_port}[/bold green]")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        uvicorn.run(
            app,
            host=bind_host,
            port=bind_port,
            log_level="debug" if common.is_debug() else "info",
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
        raise typer.Exit(0)
