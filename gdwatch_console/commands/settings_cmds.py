from __future__ import annotations

from dataclasses import asdict

from rich import print, print_json

from gdwatch_console.client import build_base_url
from gdwatch_console.commands.common import (
    CliState,
    exit_with_error,
    read_config_or_exit,
    write_config_or_exit,
)
from gdwatch_console.config import CONFIG_ENV_OVERRIDES, get_config_path, get_env_overrides

LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def settings_show_cmd(state: CliState) -> None:
    print(f"[dim]{get_config_path()}[/dim]")
    print_json(data=asdict(state.settings))
    for key in sorted(get_env_overrides()):
        print(f"[yellow]{key} is set by {CONFIG_ENV_OVERRIDES[key]}[/yellow]")


def settings_set_cmd(key: str, raw_value: str) -> None:
    """Store one console setting in the settings file; an empty value removes it."""
    if key not in CONFIG_ENV_OVERRIDES:
        exit_with_error(f"Unknown setting {key!r}; use one of {', '.join(CONFIG_ENV_OVERRIDES)}")

    config_data = read_config_or_exit()
    value = raw_value.strip()
    if not value:
        config_data.pop(key, None)
    elif key == "timeout_s":
        try:
            timeout = float(value)
        except ValueError:
            exit_with_error("timeout_s must be a number")
        if timeout <= 0:
            exit_with_error("timeout_s must be positive")
        config_data[key] = timeout
    elif key == "log_level":
        level = value.upper()
        if level not in LOG_LEVEL_NAMES:
            exit_with_error(f"log_level must be one of {', '.join(LOG_LEVEL_NAMES)}")
        config_data[key] = level
    elif key == "base_url":
        config_data[key] = build_base_url(value)
    else:
        config_data[key] = value
    write_config_or_exit(config_data)
    print(f"[green]Saved {key} to {get_config_path()}[/green]")
