from __future__ import annotations

from dataclasses import asdict
from typing import Any

from rich import print, print_json

from gdwatch_console.adapter import encode_config
from gdwatch_console.commands.common import (
    CliState,
    exit_with_error,
    open_context,
    parse_field_value,
    require_loaded,
    run,
)
from gdwatch_console.errors import ConsoleError
from gdwatch_console.store import FieldPath, resolve_path


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


def config_show_cmd(state: CliState, *, wire: bool) -> None:
    """Print the current service configuration."""

    async def _show() -> Any:
        async with open_context(state) as ctx:
            config = await require_loaded(ctx)
            if wire:
                return encode_config(config)
            return asdict(config)

    try:
        data = run(_show())
    except ConsoleError as exc:
        exit_with_error(f"Cannot render config: {exc}", exc)
    print_json(data=data)


def config_get_cmd(state: CliState, path: str) -> None:
    try:
        field_path = resolve_path(path)
    except ValueError as exc:
        exit_with_error(str(exc))

    async def _get() -> Any:
        async with open_context(state) as ctx:
            await require_loaded(ctx)
            return ctx.config_store.get_path(field_path)

    print_json(data=_to_jsonable(run(_get())))


def config_set_cmd(state: CliState, path: str, raw_value: str) -> None:
    """Load the configuration, update one field and save it back."""
    try:
        field_path = resolve_path(path)
        value = parse_field_value(field_path, raw_value)
    except ValueError as exc:
        exit_with_error(str(exc))

    async def _set() -> None:
        async with open_context(state) as ctx:
            await require_loaded(ctx)
            ctx.config_store.set_path(field_path, value)
            await ctx.config_store.save()

    try:
        run(_set())
    except ConsoleError as exc:
        exit_with_error(f"Failed to save config: {exc}", exc)
    print(f"[green]Updated {field_path.value}[/green]")


def config_paths_cmd() -> None:
    for field_path in FieldPath:
        print(f"{field_path.value} [dim]({field_path.kind})[/dim]")
