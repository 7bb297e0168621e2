"""CLI entry point for cdplink."""

import json
import logging
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cdplink.config import ClientSettings
from cdplink.core.cdp_client import CDPClient, check_cdp_connection
from cdplink.core.exceptions import (
    ConnectError,
    NoMessageError,
    RequestRejectedError,
    SessionError,
)
from cdplink.core.session import CDPSession

console = Console()
app = typer.Typer(
    name="cdplink",
    help="""Talk to a browser over the Chrome DevTools Protocol.

Typical workflow:
    cdplink targets
    cdplink send Runtime.evaluate --params '{"expression": "1 + 1"}' --tab 0
    cdplink wait Page.loadEventFired --enable Page.enable --tab 0
    """,
    no_args_is_help=True,
)

HostOption = Annotated[str | None, typer.Option("--host", help="CDP host")]
PortOption = Annotated[int | None, typer.Option("--port", "-p", help="CDP port")]
TabOption = Annotated[int | None, typer.Option("--tab", "-t", help="Target index")]
TargetOption = Annotated[str | None, typer.Option("--target", help="Target ID")]
UrlOption = Annotated[
    str | None, typer.Option("--url", help="Pick the first page whose URL contains this")
]
TimeoutOption = Annotated[
    float | None, typer.Option("--timeout", help="Seconds to wait (default from settings)")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log protocol traffic")] = False,
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _client(host: str | None, port: int | None) -> CDPClient:
    return CDPClient(settings=ClientSettings.from_env(host=host, port=port))


def _open_session(
    client: CDPClient,
    tab: int | None,
    target_id: str | None,
    url_filter: str | None = None,
) -> CDPSession:
    try:
        if target_id:
            return client.connect_to_target(target_id)
        if url_filter:
            return client.connect(client.find_target(url_filter=url_filter))
        return client.connect_to_tab(tab or 0)
    except ConnectError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("\n[dim]Hint: check available targets with [bold]cdplink targets[/bold][/dim]")
        raise typer.Exit(code=1) from None


def _parse_params(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"not valid JSON: {e}", param_hint="--params") from None
    if not isinstance(params, dict):
        raise typer.BadParameter("must be a JSON object", param_hint="--params")
    return params


@app.command()
def doctor(host: HostOption = None, port: PortOption = None) -> None:
    """Check CDP connectivity."""
    settings = ClientSettings.from_env(host=host, port=port)
    if check_cdp_connection(host=settings.host, port=settings.port):
        console.print(f"[green]✓[/green] CDP available at {settings.host}:{settings.port}")
    else:
        console.print(f"[yellow]![/yellow] CDP not available at {settings.host}:{settings.port}")
        console.print("\n[dim]Launch Chrome with:[/dim]")
        console.print(f"  chrome --remote-debugging-port={settings.port}")
        raise typer.Exit(code=1)


@app.command()
def targets(
    host: HostOption = None,
    port: PortOption = None,
    url_filter: Annotated[str | None, typer.Option("--url", help="Filter by URL substring")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List available CDP targets (tabs/pages)."""
    client = _client(host, port)
    try:
        all_targets = client.list_targets()
    except ConnectError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None

    if url_filter:
        all_targets = [t for t in all_targets if url_filter in t.url]

    if json_output:
        data = [
            {
                "id": t.id,
                "type": t.target_type,
                "title": t.title,
                "url": t.url,
                "webSocketDebuggerUrl": t.websocket_url,
            }
            for t in all_targets
        ]
        console.print_json(json.dumps(data))
        return

    if not all_targets:
        console.print("[yellow]No targets found[/yellow]")
        return

    table = Table(title="CDP Targets")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Title", max_width=40)
    table.add_column("URL", max_width=60)

    for index, t in enumerate(all_targets):
        table.add_row(str(index), t.id[:12], t.target_type, t.title[:40], t.url[:60])

    console.print(table)


@app.command()
def send(
    method: Annotated[str, typer.Argument(help="CDP method, e.g. Runtime.evaluate")],
    params: Annotated[str | None, typer.Option("--params", help="Parameters as JSON")] = None,
    host: HostOption = None,
    port: PortOption = None,
    tab: TabOption = None,
    target_id: TargetOption = None,
    url_filter: UrlOption = None,
    timeout: TimeoutOption = None,
) -> None:
    """Send one command and print the response.

    Examples:
        cdplink send Browser.getVersion
        cdplink send Runtime.evaluate --params '{"expression": "document.title"}'
        cdplink send Page.reload --url localhost:3000
    """
    parsed = _parse_params(params)
    client = _client(host, port)

    with _open_session(client, tab, target_id, url_filter) as session:
        try:
            response = session.send(method, parsed, timeout=timeout)
        except RequestRejectedError as e:
            console.print(f"[red]Rejected:[/red] {e}")
            console.print_json(json.dumps(e.frame))
            raise typer.Exit(code=1) from None
        except SessionError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1) from None

    console.print_json(json.dumps(response))


@app.command()
def wait(
    event: Annotated[str, typer.Argument(help="Event name, e.g. Page.loadEventFired")],
    enable: Annotated[
        list[str] | None,
        typer.Option("--enable", "-e", help="Command to send first (repeatable)"),
    ] = None,
    host: HostOption = None,
    port: PortOption = None,
    tab: TabOption = None,
    target_id: TargetOption = None,
    url_filter: UrlOption = None,
    timeout: TimeoutOption = None,
) -> None:
    """Wait for the next occurrence of an event and print it.

    Examples:
        cdplink wait Page.loadEventFired --enable Page.enable
        cdplink wait Network.responseReceived -e Network.enable --timeout 30
    """
    client = _client(host, port)

    with _open_session(client, tab, target_id, url_filter) as session:
        try:
            for command in enable or []:
                session.send(command, timeout=timeout)
            frame = session.wait_for_event(event, timeout=timeout)
        except NoMessageError:
            console.print(f"[yellow]No {event} event received[/yellow]")
            raise typer.Exit(code=1) from None
        except SessionError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1) from None

    console.print_json(json.dumps(frame))


if __name__ == "__main__":
    app()
