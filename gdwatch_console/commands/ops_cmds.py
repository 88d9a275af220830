from __future__ import annotations

from collections.abc import Awaitable, Callable

import typer
from rich import print

from gdwatch_console.client import GdWatchClient
from gdwatch_console.commands.common import CliState, exit_with_error, open_context, run
from gdwatch_console.errors import ConsoleError
from gdwatch_console.logs import LOG_LEVELS, LogEntry

ACTIONS: dict[str, tuple[str, Callable[[GdWatchClient], Awaitable[None]]]] = {
    "sync": ("Sync triggered", lambda client: client.trigger_sync()),
    "rclone-refresh": ("Full rclone refresh started", lambda client: client.trigger_full_refresh()),
    "tree-refresh": ("File tree rebuild started", lambda client: client.rebuild_index()),
}

_LEVEL_STYLES = {"info": "cyan", "warn": "yellow", "error": "red", "debug": "dim"}


def action_cmd(state: CliState, action: str) -> None:
    message, call = ACTIONS[action]

    async def _run() -> None:
        async with open_context(state) as ctx:
            await call(ctx.client)

    try:
        run(_run())
    except ConsoleError as exc:
        exit_with_error(f"{action} failed: {exc}", exc)
    print(f"[green]{message}[/green]")


def notify_test_cmd(state: CliState, path: str) -> None:
    async def _run() -> None:
        async with open_context(state) as ctx:
            await ctx.client.test_notification(path)

    try:
        run(_run())
    except ConsoleError as exc:
        exit_with_error(f"Test notification failed: {exc}", exc)
    print(f"[green]Test notification queued for {path}[/green]")


def _format_entry(entry: LogEntry) -> str:
    style = _LEVEL_STYLES.get(entry.level, "white")
    return f"[dim]{entry.time}[/dim] [{style}]{entry.level:<5}[/{style}] {entry.content}"


def logs_show_cmd(state: CliState, *, since: int, level: str | None) -> None:
    if level is not None and level not in LOG_LEVELS:
        exit_with_error(f"Unknown level {level!r}; use one of {', '.join(LOG_LEVELS)}")

    async def _fetch() -> tuple[bool, list[LogEntry]]:
        async with open_context(state) as ctx:
            ok = await ctx.logs_store.fetch(since)
            return ok, ctx.logs_store.entries

    ok, entries = run(_fetch())
    if not ok:
        exit_with_error("Failed to fetch logs")
    shown = [entry for entry in entries if level is None or entry.level == level]
    for entry in shown:
        print(_format_entry(entry))
    print(f"[dim]{len(shown)} of {len(entries)} lines[/dim]")


def logs_clear_cmd(state: CliState, *, files: bool) -> None:
    async def _clear() -> bool:
        async with open_context(state) as ctx:
            if files:
                return await ctx.logs_store.clear_files()
            return await ctx.logs_store.clear_memory()

    if not run(_clear()):
        exit_with_error("Failed to clear logs")
    print("[green]Log files cleared[/green]" if files else "[green]Memory logs cleared[/green]")


def status_cmd(state: CliState) -> None:
    async def _status() -> dict:
        async with open_context(state) as ctx:
            return await ctx.client.fetch_status()

    try:
        status = run(_status())
    except ConsoleError as exc:
        print(f"[yellow]Service offline: {exc}[/yellow]")
        raise typer.Exit(code=1) from exc
    name = status.get("app_name") or "GD Watcher"
    version = status.get("app_version") or "?"
    print(f"[bold]{name}[/bold] {version} [green]{status.get('status', 'unknown')}[/green]")
    print(f"- uptime: {status.get('uptime_display', '--')}")
    print(f"- tasks today: {status.get('today_completed_tasks', 0)}")
    print(f"- tasks total: {status.get('history_completed_tasks', 0)}")
    memory = status.get("memory_alloc_mb")
    if isinstance(memory, (int, float)):
        print(f"- memory: {memory:.1f} MB")


def oauth_url_cmd(state: CliState) -> None:
    async def _url() -> str:
        async with open_context(state) as ctx:
            return await ctx.client.fetch_oauth_login_url()

    try:
        url = run(_url())
    except ConsoleError as exc:
        exit_with_error(f"Cannot get OAuth login URL: {exc}", exc)
    print(url)
