from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/gdwatch-console/config.json").expanduser()
DEFAULT_SESSION_PATH = "~/.config/gdwatch-console/session.json"

CONFIG_ENV_OVERRIDES = {
    "base_url": "GDWATCH_CONSOLE_URL",
    "timeout_s": "GDWATCH_CONSOLE_TIMEOUT_S",
    "session_path": "GDWATCH_CONSOLE_SESSION",
    "log_level": "GDWATCH_CONSOLE_LOG_LEVEL",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("GDWATCH_CONSOLE_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class ConsoleConfig:
    base_url: str = "http://127.0.0.1:8448"
    timeout_s: float = 30.0
    session_path: str = DEFAULT_SESSION_PATH
    log_level: str = "WARNING"

    @property
    def session_file(self) -> Path:
        return Path(self.session_path).expanduser()


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def load_config(path: Path | None = None) -> ConsoleConfig:
    cfg = ConsoleConfig()
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(
            f"Ignoring {get_config_path(path)}: {exc}", RuntimeWarning, stacklevel=2
        )
        data = {}
    cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: ConsoleConfig, data: dict[str, Any]) -> ConsoleConfig:
    for key, value in data.items():
        if key not in CONFIG_ENV_OVERRIDES:
            continue
        if key == "timeout_s":
            cfg.timeout_s = _parse_float(value, cfg.timeout_s, key=key)
            continue
        if isinstance(value, str) and value.strip():
            setattr(cfg, key, value.strip())
    return cfg


def _apply_env(cfg: ConsoleConfig) -> ConsoleConfig:
    return _apply_dict(cfg, get_env_overrides())
