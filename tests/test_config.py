import json
from pathlib import Path

import pytest

from gdwatch_console.config import (
    ConsoleConfig,
    get_config_path,
    get_env_overrides,
    load_config,
    read_config_file,
    write_config_file,
)


def test_read_config_file_rejects_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.raises(ValueError, match="invalid config json"):
        read_config_file(config_path)


def test_read_config_file_rejects_non_object(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1]")
    with pytest.raises(ValueError, match="must be an object"):
        read_config_file(config_path)


def test_read_config_file_missing_or_blank(tmp_path: Path) -> None:
    assert read_config_file(tmp_path / "missing.json") == {}
    blank = tmp_path / "blank.json"
    blank.write_text("  \n")
    assert read_config_file(blank) == {}


def test_write_then_load(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.json"
    write_config_file({"base_url": "http://gd:9000", "timeout_s": 5}, config_path)

    assert json.loads(config_path.read_text())["base_url"] == "http://gd:9000"
    cfg = load_config(config_path)
    assert cfg.base_url == "http://gd:9000"
    assert cfg.timeout_s == 5.0


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GDWATCH_CONSOLE_CONFIG", str(tmp_path / "other.json"))
    assert get_config_path() == tmp_path / "other.json"


def test_env_overrides_win(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.json"
    write_config_file({"base_url": "http://file:1"}, config_path)
    monkeypatch.setenv("GDWATCH_CONSOLE_URL", "http://env:2")
    monkeypatch.setenv("GDWATCH_CONSOLE_LOG_LEVEL", "DEBUG")

    cfg = load_config(config_path)

    assert cfg.base_url == "http://env:2"
    assert cfg.log_level == "DEBUG"
    assert get_env_overrides()["base_url"] == "http://env:2"


def test_invalid_timeout_warns_and_keeps_default(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GDWATCH_CONSOLE_TIMEOUT_S", "soon")
    with pytest.warns(RuntimeWarning, match="timeout_s"):
        cfg = load_config(tmp_path / "missing.json")
    assert cfg.timeout_s == 30.0


def test_negative_timeout_in_file_is_ignored(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    write_config_file({"timeout_s": -1}, config_path)
    with pytest.warns(RuntimeWarning):
        cfg = load_config(config_path)
    assert cfg.timeout_s == 30.0


def test_unknown_keys_are_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GDWATCH_CONSOLE_SESSION")
    config_path = tmp_path / "config.json"
    write_config_file({"colour": "blue", "session_path": "~/s.json"}, config_path)
    cfg = load_config(config_path)
    assert not hasattr(cfg, "colour")
    assert cfg.session_file == Path("~/s.json").expanduser()


def test_defaults() -> None:
    cfg = ConsoleConfig()
    assert cfg.base_url == "http://127.0.0.1:8448"
    assert cfg.timeout_s == 30.0
    assert cfg.log_level == "WARNING"


def test_load_config_warns_on_invalid_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")

    with pytest.warns(RuntimeWarning, match="invalid config json"):
        cfg = load_config(config_path)

    assert cfg == ConsoleConfig(session_path=cfg.session_path)


def test_load_config_warns_on_non_object_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text('["http://gd:9000"]')

    with pytest.warns(RuntimeWarning, match="must be an object"):
        cfg = load_config(config_path)

    assert cfg.base_url == "http://127.0.0.1:8448"


def test_blank_env_override_keeps_file_value(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.json"
    write_config_file({"base_url": "http://file:1", "timeout_s": 12}, config_path)
    monkeypatch.setenv("GDWATCH_CONSOLE_URL", "  ")
    monkeypatch.setenv("GDWATCH_CONSOLE_TIMEOUT_S", "45")

    cfg = load_config(config_path)

    assert cfg.base_url == "http://file:1"
    assert cfg.timeout_s == 45.0
