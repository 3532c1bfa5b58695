"""
CLI entry point for opsbridge.

This module provides the Typer-based command-line interface.

Commands:
    serve   Serve the tools over stdio (default) or HTTP/SSE
    tools   List the registered tools and their arguments

Architecture Note:
    The CLI is thin: it loads settings, builds the server
    state and hands it to a transport. Startup errors (missing environment
    variables, a tool module that fails to load) are printed and end the
    process with exit code 1 before any transport starts.
"""

import asyncio
import json
import traceback
from enum import Enum
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from opsbridge import __version__
from opsbridge.config import Settings
from opsbridge.errors import OpsBridgeError
from opsbridge.log import configure_logging, stderr_console
from opsbridge.state import ServerState
from opsbridge.transports.stdio import StdioTransport

# Initialize Typer app with metadata
app = typer.Typer(
    name="opsbridge",
    help="Serve cloud and chat operations tools to agents over stdio or SSE.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


class Transport(str, Enum):
    """Transport the server is reachable through."""

    STDIO = "stdio"
    SSE = "sse"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]opsbridge[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    opsbridge - Azure and Discord operations tools for agents.
    """
    pass


def _load_state(debug: bool) -> ServerState:
    """Load settings and discover tools, exiting on any startup error."""
    try:
        settings = Settings()
        return ServerState.from_settings(settings)
    except (ValidationError, OpsBridgeError) as e:
        label = "Invalid configuration" if isinstance(e, ValidationError) else "Startup failed"
        stderr_console.print(f"[red]{label}: {e}[/red]")
        if debug:
            stderr_console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1) from e


@app.command()
def serve(
    transport: Annotated[
        Transport,
        typer.Argument(help="Transport to serve: stdio or sse."),
    ] = Transport.STDIO,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Interface to bind the SSE server to."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port of the SSE server."),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks for startup errors."),
    ] = False,
) -> None:
    """
    Serve the registered tools.

    Examples:
        opsbridge serve
        opsbridge serve sse --port 8765
    """
    configure_logging(log_level or "INFO")
    state = _load_state(debug)
    settings = state.settings
    if log_level is None:
        configure_logging(settings.log_level)

    if transport == Transport.STDIO:
        asyncio.run(StdioTransport(state.protocol).serve())
        return

    import uvicorn

    from opsbridge.transports.sse import create_app

    bind_host = host or settings.host
    bind_port = port or settings.port
    stderr_console.print(f"[dim]Serving SSE on http://{bind_host}:{bind_port}/sse[/dim]")
    uvicorn.run(
        create_app(state),
        host=bind_host,
        port=bind_port,
        log_level=(log_level or settings.log_level).lower(),
    )


@app.command("tools")
def list_tools(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the tools/list payload as JSON."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks for startup errors."),
    ] = False,
) -> None:
    """
    List the registered tools and their arguments.
    """
    configure_logging("WARNING")
    state = _load_state(debug)

    if json_output:
        print(json.dumps({"tools": state.registry.describe()}, indent=2))
        return

    table = Table(title="Registered tools")
    table.add_column("Tool", style="bold")
    table.add_column("Required")
    table.add_column("Optional")
    table.add_column("Description")

    for definition in state.registry:
        required = [name for name, spec in definition.schema.items() if not spec.optional]
        optional = [name for name, spec in definition.schema.items() if spec.optional]
        table.add_row(
            definition.name,
            ", ".join(required) or "-",
            ", ".join(optional) or "-",
            definition.description,
        )

    console.print(table)


if __name__ == "__main__":
    app()
