from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, NoReturn, TypeVar

import httpx
import typer
from rich import print

from gdwatch_console.config import ConsoleConfig, read_config_file, write_config_file
from gdwatch_console.context import ConsoleContext
from gdwatch_console.errors import UnauthorizedError
from gdwatch_console.schema import Config, MappingRule, RcloneInstance
from gdwatch_console.store import FieldPath

T = TypeVar("T")

SESSION_CLEARED = "[yellow]Session cleared; run `gdwatch-console login` again[/yellow]"


@dataclass
class CliState:
    """What every command receives from the root callback."""

    settings: ConsoleConfig
    transport: httpx.AsyncBaseTransport | None = None


def open_context(state: CliState) -> AbstractAsyncContextManager[ConsoleContext]:
    return ConsoleContext.open(state.settings, transport=state.transport)


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid settings file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write settings: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def exit_with_error(message: str, exc: BaseException | None = None) -> NoReturn:
    print(f"[red]{message}[/red]")
    if isinstance(exc, UnauthorizedError):
        print(SESSION_CLEARED)
    raise typer.Exit(code=1) from exc


async def require_loaded(ctx: ConsoleContext) -> Config:
    """Load the configuration or exit with the failure reason."""
    if await ctx.config_store.load() and ctx.config_store.value is not None:
        return ctx.config_store.value
    reason = ctx.config_store.last_error or "unknown error"
    print(f"[red]Failed to load config: {reason}[/red]")
    if ctx.reloads:
        print(SESSION_CLEARED)
    raise typer.Exit(code=1)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "off", "no"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _load_json(raw: str, expected: type) -> Any:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid json: {exc.msg}") from exc
    if not isinstance(value, expected):
        raise ValueError(f"expected a JSON {expected.__name__}")
    return value


def _parse_rules(raw: str) -> list[MappingRule]:
    rules: list[MappingRule] = []
    for item in _load_json(raw, list):
        if not isinstance(item, dict):
            raise ValueError("each rule must be an object")
        rules.append(
            MappingRule(
                regex=str(item.get("regex") or ""),
                replacement=str(item.get("replacement") or ""),
            )
        )
    return rules


def _parse_instances(raw: str) -> list[RcloneInstance]:
    instances: list[RcloneInstance] = []
    for item in _load_json(raw, list):
        if not isinstance(item, dict):
            raise ValueError("each instance must be an object")
        instances.append(
            RcloneInstance(
                host=str(item.get("host") or ""),
                endpoint=str(item.get("endpoint") or ""),
                wait_for_data=bool(item.get("wait_for_data", True)),
            )
        )
    return instances


def parse_field_value(path: FieldPath, raw: str) -> Any:
    """Turn command line text into a value of the field's type."""
    kind = path.kind
    if kind == "str":
        return raw
    if kind == "int":
        try:
            return int(raw.strip())
        except ValueError:
            raise ValueError(f"not an integer: {raw!r}") from None
    if kind == "bool":
        return _parse_bool(raw)
    if kind == "str_list":
        if raw.strip().startswith("["):
            return [str(item) for item in _load_json(raw, list)]
        return [part.strip() for part in raw.split(",") if part.strip()]
    if kind == "rules":
        return _parse_rules(raw)
    if kind == "instances":
        return _parse_instances(raw)
    if kind == "headers":
        return {str(k): str(v) for k, v in _load_json(raw, dict).items()}
    raise ValueError(f"unsupported field kind: {kind}")

