from __future__ import annotations

from rich import print

from gdwatch_console.auth import LoginResult
from gdwatch_console.commands.common import CliState, exit_with_error, open_context, run
from gdwatch_console.session import SUPPORTED_LOCALES, LocalStorage, SessionStore


def _session(state: CliState) -> SessionStore:
    session = SessionStore(LocalStorage(state.settings.session_file))
    session.check_auth()
    return session


def login_cmd(state: CliState, username: str, password: str) -> None:
    async def _login() -> LoginResult:
        async with open_context(state) as ctx:
            return await ctx.login(username, password)

    result = run(_login())
    if not result.success:
        exit_with_error(result.message or "Authentication failed")
    print(f"[green]Logged in as {username}[/green]")


def logout_cmd(state: CliState) -> None:
    async def _logout() -> None:
        async with open_context(state) as ctx:
            await ctx.logout()

    run(_logout())
    print("[green]Logged out[/green]")


def whoami_cmd(state: CliState) -> None:
    session = _session(state)
    if session.consume_just_logged_out():
        print("[dim]Signed out since the last command[/dim]")
    if not session.authenticated:
        print("[yellow]Not logged in[/yellow]")
        return
    print(f"[bold]{session.user_name or '(unnamed)'}[/bold] @ {state.settings.base_url}")


def locale_cmd(state: CliState, value: str | None) -> None:
    session = _session(state)
    if value is None:
        print(session.locale)
        return
    try:
        session.locale = value
    except ValueError:
        exit_with_error(f"Unsupported locale {value!r}; use one of {', '.join(SUPPORTED_LOCALES)}")
    print(f"[green]Locale set to {value}[/green]")
