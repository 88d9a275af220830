from __future__ import annotations

import logging

import typer
from rich import print

from . import __version__
from .commands.common import CliState
from .commands.config_cmds import (
    config_get_cmd,
    config_paths_cmd,
    config_set_cmd,
    config_show_cmd,
)
from .commands.ops_cmds import (
    action_cmd,
    logs_clear_cmd,
    logs_show_cmd,
    notify_test_cmd,
    oauth_url_cmd,
    status_cmd,
)
from .commands.session_cmds import locale_cmd, login_cmd, logout_cmd, whoami_cmd
from .commands.settings_cmds import settings_set_cmd, settings_show_cmd
from .config import load_config

app = typer.Typer(help="gdwatch-console: administer a GD Watcher service")
config_app = typer.Typer(help="Inspect and edit the service configuration")
logs_app = typer.Typer(help="Service logs")
app.add_typer(config_app, name="config")
app.add_typer(logs_app, name="logs")
settings_app = typer.Typer(help="Console settings (service address, timeout, session file)")
app.add_typer(settings_app, name="settings")


def _state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    if isinstance(state, CliState):
        return state
    return CliState(settings=load_config())


@app.callback()
def main(
    ctx: typer.Context,
    url: str = typer.Option(None, "--url", help="Service address (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    settings = load_config()
    if url:
        settings.base_url = url
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), None)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    # A caller may hand in a CliState to route requests through its own transport.
    injected = ctx.obj.transport if isinstance(ctx.obj, CliState) else None
    ctx.obj = CliState(settings=settings, transport=injected)


@app.command()
def version() -> None:
    """Print the console version."""

    print(__version__)


@app.command()
def login(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Service user name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Service password"),
) -> None:
    """Log in and remember the credential for later commands."""

    login_cmd(_state(ctx), username, password)


@app.command()
def logout(ctx: typer.Context) -> None:
    """Forget the stored credential."""

    logout_cmd(_state(ctx))


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the logged in user."""

    whoami_cmd(_state(ctx))


@app.command()
def locale(
    ctx: typer.Context,
    value: str = typer.Argument(None, help="zh-CN, zh-TW or en"),
) -> None:
    """Show or change the preferred locale."""

    locale_cmd(_state(ctx), value)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    wire: bool = typer.Option(False, help="Print the document as the service stores it"),
) -> None:
    """Print the full configuration."""

    config_show_cmd(_state(ctx), wire=wire)


@config_app.command("get")
def config_get(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Dotted field path, e.g. server.port"),
) -> None:
    """Print one configuration field."""

    config_get_cmd(_state(ctx), path)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Dotted field path, e.g. server.port"),
    value: str = typer.Argument(..., help="New value; lists and maps as JSON"),
) -> None:
    """Update one field and save the configuration."""

    config_set_cmd(_state(ctx), path, value)


@config_app.command("paths")
def config_paths() -> None:
    """List the editable field paths."""

    config_paths_cmd()


@logs_app.command("show")
def logs_show(
    ctx: typer.Context,
    since: int = typer.Option(0, help="Skip lines before this index"),
    level: str = typer.Option(None, help="Only show info, warn, error or debug lines"),
) -> None:
    """Show recent service log lines."""

    logs_show_cmd(_state(ctx), since=since, level=level)


@logs_app.command("clear")
def logs_clear(
    ctx: typer.Context,
    files: bool = typer.Option(False, help="Delete persisted log files instead"),
) -> None:
    """Clear the in-memory log buffer or the log files."""

    logs_clear_cmd(_state(ctx), files=files)


@settings_app.command("show")
def settings_show(ctx: typer.Context) -> None:
    """Print the effective console settings."""

    settings_show_cmd(_state(ctx))


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="base_url, timeout_s, session_path or log_level"),
    value: str = typer.Argument(..., help="New value; empty removes the setting"),
) -> None:
    """Store one console setting in the settings file."""

    settings_set_cmd(key, value)


@app.command()
def sync(ctx: typer.Context) -> None:
    """Trigger a change sync now."""

    action_cmd(_state(ctx), "sync")


@app.command("rclone-refresh")
def rclone_refresh(ctx: typer.Context) -> None:
    """Ask every rclone instance for a full refresh."""

    action_cmd(_state(ctx), "rclone-refresh")


@app.command("tree-refresh")
def tree_refresh(ctx: typer.Context) -> None:
    """Rebuild the service's file tree index."""

    action_cmd(_state(ctx), "tree-refresh")


@app.command("test-notify")
def notify_test(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File path to send to Symedia"),
) -> None:
    """Send a test Symedia notification."""

    notify_test_cmd(_state(ctx), path)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show service status."""

    status_cmd(_state(ctx))


@app.command("oauth-url")
def oauth_url(ctx: typer.Context) -> None:
    """Print the Google OAuth authorization URL."""

    oauth_url_cmd(_state(ctx))


if __name__ == "__main__":
    app()
