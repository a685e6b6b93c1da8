#!/usr/bin/env python3
"""
Relay CLI - Session Relay

Main entrypoint for the relay-cli command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from relay_cli.commands import serve, session

app = typer.Typer(
    name="relay-cli",
    help="Session relay server and inspection tools",
    add_completion=False,
)

console = Console()

app.add_typer(session.app, name="session", help="Inspect sessions on a running server")

app.command("serve")(serve.serve_command)
app.command("token")(serve.token_command)


@app.command()
def version():
    """Show version information."""
    from relay import __version__ as core_version
    from relay_cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]Relay CLI[/bold]", f"v{__version__}")
    table.add_row("Relay core", f"v{core_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
