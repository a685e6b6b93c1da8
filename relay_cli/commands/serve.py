"""
Server commands: serve, token
"""

import typer
import uvicorn
from typing import Optional
from rich.console import Console

from relay.core.ids import new_session_token
from relay_server.config import RelayConfig
from relay_server.logging_config import setup_logging

console = Console()


def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: RELAY_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: RELAY_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development)"),
):
    """
    Run the relay server.

    Examples:
        relay-cli serve
        relay-cli serve --port 8000
    """
    config = RelayConfig.from_env()
    try:
        config.eviction_policy()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    setup_logging()
    uvicorn.run(
        "relay_server.main:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        log_config=None,
    )


def token_command():
    """
    Print a new session token.

    Share it with watchers; the session starts when the first endpoint connects.
    """
    print(new_session_token())
