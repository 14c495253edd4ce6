from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

import asyncio
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from noted.config import Settings
from noted.context import AppContext, is_offline
from noted.models import TODO_STATUSES
from noted.store import FETCH_ERRORS, CollectionStore
from noted.stores.theme import THEMES, ThemeStore

app = typer.Typer(help="Noted — accounts, meeting notes and todos from the terminal")
console = Console()

_TOAST_STYLES = {"success": "green", "error": "red", "info": "cyan"}


class CommandFailed(Exception):
    pass


def make_context() -> AppContext:
    return AppContext(Settings.from_env())


def _print_toasts(ctx: AppContext) -> None:
    for toast in ctx.toasts.toasts.get():
        style = _TOAST_STYLES.get(toast.type, "white")
        console.print(f"[{style}]{toast.message}[/{style}]")


def _run(action: Callable[[AppContext], Awaitable[None]]) -> None:
    """Run *action* against a fresh context, turning failures into an error toast."""

    async def runner() -> bool:
        async with make_context() as ctx:
            ok = True
            try:
                await action(ctx)
            except CommandFailed as exc:
                ctx.toasts.error(str(exc))
                ok = False
            except FETCH_ERRORS as exc:
                if is_offline(exc):
                    ctx.toasts.error(f"Cannot reach the Noted backend at {ctx.api.locator.base_url_sync()}")
                else:
                    ctx.toasts.report(exc)
                ok = False
            _print_toasts(ctx)
            return ok

    if not asyncio.run(runner()):
        raise typer.Exit(code=1)


def _ensure_loaded(store: CollectionStore, loaded: bool) -> None:
    error = store.error.get()
    if not loaded and error:
        raise CommandFailed(error)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def accounts(deleted: bool = typer.Option(False, help="Show soft-deleted accounts")) -> None:
    """List accounts."""

    async def action(ctx: AppContext) -> None:
        if deleted:
            _ensure_loaded(ctx.accounts, await ctx.accounts.load_deleted())
            rows = ctx.accounts.deleted.get()
        else:
            _ensure_loaded(ctx.accounts, await ctx.accounts.load())
            rows = ctx.accounts.items.get()
        if not rows:
            console.print("[dim]No accounts.[/dim]")
            return
        table = Table(title="Deleted Accounts" if deleted else "Accounts")
        table.add_column("Name", style="cyan")
        table.add_column("Owner")
        table.add_column("Budget", style="yellow", justify="right")
        table.add_column("Engineers", justify="right")
        table.add_column("ID", style="dim")
        for a in rows:
            budget = f"{a.budget:,.0f}" if a.budget is not None else "—"
            engineers = str(a.est_engineers) if a.est_engineers is not None else "—"
            table.add_row(a.name, a.account_owner or "—", budget, engineers, a.id)
        console.print(table)

    _run(action)


@app.command()
def notes(
    account: Optional[str] = typer.Option(None, help="Only notes of this account ID"),
    archived: bool = typer.Option(False, help="Show archived notes"),
    deleted: bool = typer.Option(False, help="Show soft-deleted notes"),
) -> None:
    """List meeting notes."""

    async def action(ctx: AppContext) -> None:
        store = ctx.notes
        if archived:
            _ensure_loaded(store, await store.load_archived())
            rows = store.archived.get()
        elif deleted:
            _ensure_loaded(store, await store.load_deleted())
            rows = store.deleted.get()
        else:
            _ensure_loaded(store, await store.load(account))
            rows = store.items.get()
        if not rows:
            console.print("[dim]No notes.[/dim]")
            return
        table = Table(title="Notes")
        table.add_column("", width=1)
        table.add_column("Title", style="cyan")
        table.add_column("Account")
        table.add_column("Template", style="magenta")
        table.add_column("Updated", style="yellow")
        for n in rows:
            table.add_row("*" if n.pinned else "", n.title, n.account_name or "—", n.template_type, n.updated_at or "—")
        console.print(table)

    _run(action)


@app.command()
def todos(
    status: Optional[str] = typer.Option(None, help="Filter by status"),
    board: bool = typer.Option(False, help="Show a kanban board grouped by status"),
) -> None:
    """List todos."""
    if status is not None and status not in TODO_STATUSES:
        console.print(f"[red]Unknown status {status!r}; expected one of {', '.join(TODO_STATUSES)}[/red]")
        raise typer.Exit(code=2)

    async def action(ctx: AppContext) -> None:
        _ensure_loaded(ctx.todos, await ctx.todos.load(status))
        rows = ctx.todos.items.get()
        if not rows:
            console.print("[green]All clear! No todos.[/green]")
            return
        if board:
            columns = ctx.todos.by_status.get()
            table = Table(title="Todo Board")
            for name in TODO_STATUSES:
                table.add_column(f"{name.replace('_', ' ').title()} ({len(columns[name])})")
            depth = max(len(items) for items in columns.values())
            for i in range(depth):
                table.add_row(*(columns[name][i].title if i < len(columns[name]) else "" for name in TODO_STATUSES))
            console.print(table)
            return
        table = Table(title="Todos")
        table.add_column("Title", style="cyan")
        table.add_column("Status", style="magenta")
        table.add_column("Priority")
        table.add_column("Due Date", style="yellow")
        table.add_column("Account", style="dim")
        for t in rows:
            table.add_row(t.title, t.status, t.priority, t.due_date or "—", t.account_name or "—")
        console.print(table)

    _run(action)


@app.command()
def search(query: str = typer.Argument(..., help="Text to search for")) -> None:
    """Search notes, accounts and todos."""

    async def action(ctx: AppContext) -> None:
        _ensure_loaded(ctx.search, await ctx.search.search(query))
        rows = ctx.search.items.get()
        if not rows:
            console.print(f"[dim]No results for {query!r}.[/dim]")
            return
        table = Table(title=f"Results for {query!r}")
        table.add_column("Type", style="magenta")
        table.add_column("Title", style="cyan")
        table.add_column("Account")
        table.add_column("Snippet", style="dim")
        for r in rows:
            table.add_row(r.type, r.title, r.account_name or "—", r.snippet or "")
        console.print(table)

    _run(action)


def _parse_month(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise typer.BadParameter("expected YYYY-MM") from None


@app.command()
def calendar(month: Optional[str] = typer.Option(None, help="Month to show, as YYYY-MM")) -> None:
    """Show calendar events around a month."""
    target = _parse_month(month) if month else None

    async def action(ctx: AppContext) -> None:
        store = ctx.calendar
        await store.init()
        state = store.state.get()
        if state.error:
            raise CommandFailed(state.error)
        if not state.config.connected:
            ctx.toasts.info("Calendar is not connected.")
            return
        if target is not None:
            await store.set_month(target)
            state = store.state.get()
            if state.error:
                raise CommandFailed(state.error)
        table = Table(title=f"Events around {state.current_month:%B %Y}")
        table.add_column("Start", style="yellow")
        table.add_column("End", style="yellow")
        table.add_column("Title", style="cyan")
        table.add_column("Attendees", style="dim")
        for e in state.events:
            table.add_row(e.start_time, e.end_time, e.title, ", ".join(e.attendees) or "—")
        console.print(table)

    _run(action)


@app.command()
def capture(
    kind: str = typer.Argument(..., help="'note' or 'todo'"),
    title: str = typer.Argument(..., help="Title of the note or todo"),
    content: Optional[str] = typer.Option(None, help="Note content"),
    description: Optional[str] = typer.Option(None, help="Todo description"),
    account: Optional[str] = typer.Option(None, help="Account ID"),
    priority: Optional[str] = typer.Option(None, help="Todo priority"),
) -> None:
    """Quickly create a note or a todo."""
    if kind not in ("note", "todo"):
        console.print("[red]Capture type must be 'note' or 'todo'[/red]")
        raise typer.Exit(code=2)

    async def action(ctx: AppContext) -> None:
        result = await ctx.quick_capture(
            kind, title, content=content, description=description, account_id=account, priority=priority
        )
        ctx.toasts.success(f"Created {result.type} {result.title!r} ({result.id})")

    _run(action)


@app.command()
def contacts(
    filter: Optional[str] = typer.Option(None, help="internal, external, unlinked or suggestions"),
) -> None:
    """List contacts and pending account suggestions."""

    async def action(ctx: AppContext) -> None:
        try:
            loaded = await ctx.contacts.load(filter)
        except ValueError as exc:
            raise CommandFailed(str(exc)) from None
        _ensure_loaded(ctx.contacts, loaded)
        rows = ctx.contacts.items.get()
        if not rows:
            console.print("[dim]No contacts.[/dim]")
            return
        table = Table(title="Contacts")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        table.add_column("Account")
        table.add_column("Suggested", style="magenta")
        table.add_column("Meetings", justify="right")
        for c in rows:
            suggested = c.suggested_account_name if c.has_pending_suggestion else ""
            table.add_row(c.name or "—", c.email, c.account_name or "—", suggested, str(c.meeting_count))
        console.print(table)
        pending = ctx.contacts.pending_suggestions.get()
        if pending:
            ctx.toasts.info(f"{len(pending)} account suggestion(s) awaiting review")

    _run(action)


@app.command()
def export(path: Path = typer.Argument(..., help="File to write the JSON export to")) -> None:
    """Export all data as JSON."""

    async def action(ctx: AppContext) -> None:
        data = await ctx.export_data()
        path.write_text(json.dumps(data, indent=2))
        ctx.toasts.success(f"Exported data to {path}")

    _run(action)


@app.command()
def theme(name: Optional[str] = typer.Argument(None, help="Theme to switch to")) -> None:
    """Show or change the UI theme."""
    store = ThemeStore(Settings.from_env().theme_path)
    if name is None:
        console.print(store.init())
        return
    try:
        store.set(name)
    except ValueError:
        console.print(f"[red]Unknown theme {name!r}; choose from {', '.join(THEMES)}[/red]")
        raise typer.Exit(code=2)
    console.print(f"[green]Theme set to {name}[/green]")
