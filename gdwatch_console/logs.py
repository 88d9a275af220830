from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from .client import GdWatchClient
from .errors import ConsoleError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("info", "warn", "error", "debug")

_BRACKET_LINE = re.compile(r"^\[([^\]]+)\]\s*(\w+)?:?\s*(.*)$")


@dataclass(frozen=True)
class LogEntry:
    id: str
    time: str
    level: str
    content: str


def _level_from_token(token: str | None) -> str:
    if not token:
        return "info"
    lowered = token.lower()
    if "err" in lowered:
        return "error"
    if "warn" in lowered:
        return "warn"
    if "debug" in lowered or "dbg" in lowered:
        return "debug"
    return "info"


def parse_log_line(line: str, index: int) -> LogEntry:
    """Split a ``[TIME] LEVEL: MESSAGE`` service log line."""
    match = _BRACKET_LINE.match(line)
    if match is None:
        return LogEntry(
            id=f"log-{index}",
            time=datetime.now().strftime("%H:%M:%S"),
            level="info",
            content=line,
        )
    time, token, content = match.groups()
    level = _level_from_token(token)
    lowered = content.lower()
    if "error" in lowered or "failed" in lowered:
        level = "error"
    return LogEntry(id=f"log-{index}-{time}", time=time, level=level, content=content or line)


class LogsStore:
    """Recent service log lines, as held in the service's memory buffer."""

    def __init__(self, client: GdWatchClient) -> None:
        self.client = client
        self.raw_logs: list[str] = []
        self.next_idx = 0
        self.loading = False

    @property
    def count(self) -> int:
        return len(self.raw_logs)

    @property
    def entries(self) -> list[LogEntry]:
        return [parse_log_line(line, index) for index, line in enumerate(self.raw_logs)]

    async def fetch(self, since: int = 0) -> bool:
        self.loading = True
        try:
            payload = await self.client.fetch_logs(since)
        except ConsoleError as exc:
            logger.warning("log fetch failed", exc_info=exc)
            return False
        finally:
            self.loading = False
        logs = payload.get("logs")
        if isinstance(logs, list):
            self.raw_logs = [str(line) for line in logs]
        next_idx = payload.get("next_idx")
        if isinstance(next_idx, int):
            self.next_idx = next_idx
        return True

    async def clear_memory(self) -> bool:
        try:
            await self.client.clear_memory_logs()
        except ConsoleError as exc:
            logger.warning("clearing memory logs failed", exc_info=exc)
            return False
        self.raw_logs = []
        return True

    async def clear_files(self) -> bool:
        try:
            await self.client.clear_log_files()
        except ConsoleError as exc:
            logger.warning("clearing log files failed", exc_info=exc)
            return False
        return True
