"""dayview CLI - unified calendar and task agenda."""

import asyncio
import json
import logging
import sys
import time
import webbrowser
from urllib.parse import urlencode

import click

from .adapters.google_calendar import SCOPES as CALENDAR_SCOPES
from .adapters.google_tasks import SCOPES as TASKS_SCOPES
from .config import load_config
from .coordinator import AgendaCoordinator, AgendaView
from .core.agenda import SyncResult
from .core.tasks import filter_incomplete
from .errors import DayviewError
from .workflows import build_coordinator

OAUTH_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _authorize_url(client_id: str, redirect_uri: str) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(CALENDAR_SCOPES + TASKS_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    return f"{OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _serialize(result: SyncResult) -> dict:
    def task_dict(t):
        return {
            "id": t.id,
            "title": t.title,
            "notes": t.notes,
            "is_completed": t.is_completed,
            "due_date": t.due_date,
            "time_of_day": t.time_of_day,
        }

    return {
        "days": [
            {
                "date": day.date.isoformat(),
                "events": [
                    {
                        "id": e.id,
                        "title": e.title,
                        "type": e.type,
                        "start": e.start_time_of_day,
                        "duration": e.duration_minutes,
                    }
                    for e in day.events
                ],
                "tasks": [task_dict(t) for t in day.tasks],
            }
            for day in result.days
        ],
        "undated_tasks": [task_dict(t) for t in result.undated_tasks],
    }


def _show_agenda(view: AgendaView, as_json: bool, show_completed: bool = False) -> None:
    """Shared agenda display logic."""
    if view.result is None:
        if view.last_error:
            _fail(str(view.last_error))
        click.echo("No agenda loaded.")
        return

    if as_json:
        click.echo(json.dumps(_serialize(view.result), indent=2))
        return

    if view.last_error:
        click.echo(f"Warning: showing last synced data ({view.last_error})", err=True)

    for day in view.result.days:
        tasks = day.tasks if show_completed else filter_incomplete(day.tasks)
        if not day.events and not tasks:
            continue
        click.echo(f"### {day.date.strftime('%A, %B %d')}")
        for event in day.events:
            marker = "[class]" if event.is_class else ""
            click.echo(f"  {event.start_time_of_day:6} {event.title} ({event.duration_minutes} min) {marker}".rstrip())
        for task in tasks:
            check = "x" if task.is_completed else " "
            click.echo(f"  [{check}] {task.title}  ({task.id})")
        click.echo()

    undated = view.result.undated_tasks if show_completed else filter_incomplete(view.result.undated_tasks)
    if undated:
        click.echo("### No date")
        for task in undated:
            check = "x" if task.is_completed else " "
            click.echo(f"  [{check}] {task.title}  ({task.id})")


def _require_login(coordinator: AgendaCoordinator) -> None:
    if not coordinator.session.authenticated:
        if coordinator.last_error:
            _fail(f"{coordinator.last_error}. Run 'dayview login' again.")
        _fail("Not logged in. Run 'dayview login' first.")


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """dayview - two weeks of calendar events and tasks, side by side."""
    logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG if verbose else logging.WARNING)


@main.command()
@click.option("--code", default=None, help="Authorization code (skips the browser)")
def login(code: str | None):
    """Authorize with Google."""
    config = load_config()

    if not code:
        if not config.google_client_id:
            _fail("Missing GOOGLE_CLIENT_ID. Add it to config/dayview.conf")
        click.echo("Opening browser for Google authorization...")
        webbrowser.open(_authorize_url(config.google_client_id, config.redirect_uri))
        click.echo("\nAfter authorizing, copy the 'code' parameter from the redirect URL.\n")
        code = click.prompt("Paste the code here").strip()

    coordinator = build_coordinator(config)
    try:
        asyncio.run(coordinator.login(code))
    except DayviewError as e:
        _fail(str(e))

    click.echo("Authentication successful!")


@main.command()
def logout():
    """Forget stored credentials."""
    coordinator = build_coordinator(load_config())
    asyncio.run(coordinator.logout())
    click.echo("Logged out.")


@main.command()
def status():
    """Show login state."""
    coordinator = build_coordinator(load_config())
    stored = coordinator.store.load()
    if stored is None:
        click.echo("Not logged in.")
        return

    remaining = int(stored.access_token_expiry - time.time())
    if remaining > 0:
        click.echo(f"Logged in. Access token valid for {remaining // 60} more minutes.")
    else:
        click.echo("Logged in. Access token expired; it will be renewed on next sync.")
    click.echo(f"Refresh token: {'present' if stored.refresh_token else 'missing'}")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--all", "show_completed", is_flag=True, help="Include completed tasks")
def agenda(as_json: bool, show_completed: bool):
    """Show the next two weeks of events and tasks."""
    coordinator = build_coordinator(load_config())
    try:
        asyncio.run(coordinator.start())
    except DayviewError as e:
        _fail(str(e))
    _require_login(coordinator)
    _show_agenda(coordinator.snapshot(), as_json, show_completed)


@main.command()
def refresh():
    """Sync now, ignoring cached freshness."""
    coordinator = build_coordinator(load_config())

    async def run():
        await coordinator.start(sync=False)
        await coordinator.manual_refresh()

    try:
        asyncio.run(run())
    except DayviewError as e:
        _fail(str(e))
    _require_login(coordinator)
    _show_agenda(coordinator.snapshot(), as_json=False)


@main.command()
@click.argument("task_id")
def complete(task_id: str):
    """Mark a task as completed."""
    coordinator = build_coordinator(load_config())

    async def run():
        await coordinator.start(sync=False)
        _require_login(coordinator)
        await coordinator.complete_task(task_id)

    try:
        asyncio.run(run())
    except DayviewError as e:
        _fail(str(e))
    click.echo(f"Completed {task_id}.")


@main.command()
def watch():
    """Keep the agenda synced and reprint it on every change."""
    logging.getLogger().setLevel(min(logging.getLogger().level, logging.INFO))
    coordinator = build_coordinator(load_config())

    def on_change(view: AgendaView) -> None:
        if view.is_fetching or view.result is None:
            return
        click.clear()
        _show_agenda(view, as_json=False)

    async def run():
        coordinator.subscribe(on_change)
        await coordinator.start()
        _require_login(coordinator)
        coordinator.cache.start()
        try:
            while coordinator.session.authenticated:
                await asyncio.sleep(1)
        finally:
            coordinator.cache.shutdown()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped.")
        return
    except DayviewError as e:
        _fail(str(e))
    _fail("Session ended. Run 'dayview login' again.")


@main.command("serve-auth")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
def serve_auth(host: str, port: int):
    """Run the credential-issuance endpoint."""
    import uvicorn

    logging.getLogger().setLevel(min(logging.getLogger().level, logging.INFO))
    uvicorn.run("dayview.token_server:app", host=host, port=port)
