"""
Session commands: show, stats
"""

import json
import typer
import httpx
from rich.console import Console
from rich.table import Table

app = typer.Typer()
console = Console()

DEFAULT_URL = "http://localhost:3000"


def _fetch(url: str) -> httpx.Response:
    return httpx.get(url, timeout=5.0)


@app.command()
def show(
    token: str = typer.Argument(..., help="Session token"),
    url: str = typer.Option(DEFAULT_URL, "--url", "-u", help="Relay server base URL"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show one session.

    Examples:
        relay-cli session show 3f2a...
        relay-cli session show 3f2a... --json
    """
    try:
        resp = _fetch(f"{url.rstrip('/')}/api/v1/sessions/{token}")
    except httpx.HTTPError as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if resp.status_code == 404:
        if json_output:
            print(json.dumps({"error": "Session not found", "token": token}))
        else:
            console.print(f"[yellow]Session not found:[/yellow] {token}")
        raise typer.Exit(1)
    if resp.status_code != 200:
        if json_output:
            print(json.dumps({"error": f"HTTP {resp.status_code}"}))
        else:
            console.print(f"[red]Error:[/red] server answered HTTP {resp.status_code}")
        raise typer.Exit(2)

    data = resp.json()
    if json_output:
        print(json.dumps(data, indent=2))
        raise typer.Exit(0)

    table = Table(title=f"Session {token}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Events", str(data["events"]))
    table.add_row("Endpoints", str(data["endpoints"]))
    table.add_row("Age (s)", f"{data['age_seconds']:.1f}")
    idle = data.get("idle_seconds")
    table.add_row("Idle (s)", "connected" if idle is None else f"{idle:.1f}")
    console.print(table)
    raise typer.Exit(0)


@app.command()
def stats(
    url: str = typer.Option(DEFAULT_URL, "--url", "-u", help="Relay server base URL"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show registry totals.

    Examples:
        relay-cli session stats
        relay-cli session stats --url http://relay:3000 --json
    """
    try:
        resp = _fetch(f"{url.rstrip('/')}/api/v1/stats")
        resp.raise_for_status()
    except httpx.HTTPError as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    data = resp.json()
    if json_output:
        print(json.dumps(data, indent=2))
        raise typer.Exit(0)

    table = Table(title=f"Relay: {url}")
    table.add_column("Sessions", style="cyan")
    table.add_column("Endpoints", style="green")
    table.add_column("Events", style="yellow")
    table.add_column("Eviction", style="dim")
    table.add_row(str(data["sessions"]), str(data["endpoints"]), str(data["events"]), data["eviction"])
    console.print(table)
    raise typer.Exit(0)
