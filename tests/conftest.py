from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_console_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GDWATCH_CONSOLE_CONFIG", str(tmp_path / "console.json"))
    monkeypatch.setenv("GDWATCH_CONSOLE_SESSION", str(tmp_path / "session.json"))
    for name in ("GDWATCH_CONSOLE_URL", "GDWATCH_CONSOLE_TIMEOUT_S", "GDWATCH_CONSOLE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
