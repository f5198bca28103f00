"""
NotesHub Tools — Command-line Interface
========================================

    noteshub status [--url URL] [--interval SECONDS] [--once] [--show-loading]
    noteshub visits record PAGE
    noteshub visits list
    noteshub keepalive [--url URL] [--interval SECONDS]
    noteshub tunnel [--provider ngrok|localtunnel] [--port N] [--keep-running]
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich import print

from noteshub import __version__
from noteshub.client.indicator import IndicatorState, render_status
from noteshub.client.poller import StatusPoller
from noteshub.client.visits import JsonFileKeyValueStore, PageVisitTracker
from noteshub.config import settings
from noteshub.main import setup_logging
from noteshub.tools.keepalive import KeepAlivePinger
from noteshub.tools.tunnel import PROVIDERS, run_tunnel

app = typer.Typer(help=f"noteshub {__version__}: NotesHub client and operations tools")
visits_app = typer.Typer(help="Track visited pages")
app.add_typer(visits_app, name="visits")

# rich has no "amber"
_RICH_COLORS = {"gray": "grey50", "green": "green", "amber": "yellow", "red": "red"}


def _print_state(state: IndicatorState) -> None:
    presentation = render_status(state)
    color = _RICH_COLORS.get(presentation.color, presentation.color)
    print(f"[{color}]● {presentation.text}[/{color}] [dim]({presentation.icon})[/dim]")


@app.callback()
def main() -> None:
    setup_logging()


@app.command("status")
def status(
    url: str = typer.Option(None, help="Status endpoint (default: STATUS_URL)"),
    interval: float = typer.Option(None, help="Seconds between polls, 30-60"),
    once: bool = typer.Option(False, "--once", help="Poll a single time and exit"),
    show_loading: bool = typer.Option(
        False, "--show-loading", help="Show 'Checking...' while each refresh is in flight"
    ),
) -> None:
    """Poll the database status endpoint and print the indicator."""

    try:
        poller = StatusPoller(
            url=url,
            interval=interval,
            show_loading_on_refresh=show_loading,
            on_update=_print_state,
        )
    except ValueError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)

    async def _run() -> IndicatorState:
        _print_state(poller.state)
        if once:
            try:
                return await poller.poll_once()
            finally:
                await poller.stop()
        async with poller:
            await asyncio.Event().wait()
        return poller.state

    try:
        state = asyncio.run(_run())
    except KeyboardInterrupt:
        return
    if state == IndicatorState.ERROR:
        raise typer.Exit(code=1)


@visits_app.command("record")
def visits_record(
    page: str = typer.Argument(..., help="Page name"),
    store_path: Path = typer.Option(None, help="Key-value file (default: VISITS_STORE_PATH)"),
) -> None:
    """Mark a page as visited."""

    tracker = PageVisitTracker(JsonFileKeyValueStore(store_path or settings.visits_store_path))
    if tracker.record(page):
        print(f"Recorded visit to [bold]{page}[/bold]")
    else:
        print(f"[dim]{page} already recorded[/dim]")


@visits_app.command("list")
def visits_list(
    store_path: Path = typer.Option(None, help="Key-value file (default: VISITS_STORE_PATH)"),
) -> None:
    """List visited pages."""

    tracker = PageVisitTracker(JsonFileKeyValueStore(store_path or settings.visits_store_path))
    pages = sorted(tracker.visited())
    if not pages:
        print("[dim]No pages visited yet[/dim]")
        return
    for page in pages:
        print(f"- {page}")


@app.command("keepalive")
def keepalive(
    url: str = typer.Option(None, help="Base URL to ping (default: KEEPALIVE_URL)"),
    interval: float = typer.Option(None, help="Seconds between pings (default: 300)"),
) -> None:
    """Ping {url}/test periodically so the host does not go to sleep."""

    pinger = KeepAlivePinger(base_url=url, interval=interval)
    print("Press Ctrl+C to stop.")
    try:
        asyncio.run(pinger.run())
    except KeyboardInterrupt:
        print("Keep-alive service stopped.")


@app.command("tunnel")
def tunnel(
    provider: str = typer.Option("ngrok", help=f"One of: {', '.join(sorted(PROVIDERS))}"),
    port: Optional[int] = typer.Option(None, help="Local port (default: TUNNEL_PORT)"),
    keep_running: bool = typer.Option(
        False, "--keep-running", help="Reopen the tunnel when it closes unexpectedly"
    ),
) -> None:
    """Expose the local backend and point .env.production and firebase.json at it."""

    if provider not in PROVIDERS:
        print(f"[red]Unknown provider '{provider}'[/red]")
        raise typer.Exit(code=2)

    exit_code = asyncio.run(run_tunnel(provider, port=port, keep_running=keep_running))
    if exit_code:
        raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    app()
