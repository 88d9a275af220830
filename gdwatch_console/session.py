from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "auth_token"
USER_NAME_KEY = "user_name"
BASIC_AUTH_KEY = "basic_auth"
LOCALE_KEY = "locale"
JUST_LOGGED_OUT_KEY = "just_logged_out"

SUPPORTED_LOCALES = ("zh-CN", "zh-TW", "en")
DEFAULT_LOCALE = "en"


class LocalStorage:
    """Durable string key/value storage kept in a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path.expanduser()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text()
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("session storage unreadable, starting empty", exc_info=exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
        os.chmod(self.path, 0o600)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, *keys: str) -> None:
        data = self._read()
        changed = False
        for key in keys:
            if key in data:
                data.pop(key)
                changed = True
        if changed:
            self._write(data)


class SessionStore:
    """Authenticated state of the console user.

    The authenticated marker, the display name and the derived basic
    credential survive restarts through :class:`LocalStorage`.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self.authenticated = False
        self.user_name = ""

    def check_auth(self) -> bool:
        if self.storage.get(AUTH_TOKEN_KEY):
            self.authenticated = True
            self.user_name = self.storage.get(USER_NAME_KEY) or ""
        return self.authenticated

    @property
    def credential(self) -> str | None:
        return self.storage.get(BASIC_AUTH_KEY) or None

    def login(self, username: str, credential: str) -> None:
        self.authenticated = True
        self.user_name = username
        self.storage.set(AUTH_TOKEN_KEY, "authenticated")
        self.storage.set(USER_NAME_KEY, username)
        self.storage.set(BASIC_AUTH_KEY, credential)

    def logout(self) -> None:
        self._clear()
        self.storage.set(JUST_LOGGED_OUT_KEY, "true")

    def teardown(self) -> None:
        """Drop all authenticated state after the service rejected a call."""
        logger.info("session rejected by service, clearing credentials")
        self._clear()

    def _clear(self) -> None:
        self.authenticated = False
        self.user_name = ""
        self.storage.remove(AUTH_TOKEN_KEY, USER_NAME_KEY, BASIC_AUTH_KEY)

    def consume_just_logged_out(self) -> bool:
        flagged = self.storage.get(JUST_LOGGED_OUT_KEY) == "true"
        if flagged:
            self.storage.remove(JUST_LOGGED_OUT_KEY)
        return flagged

    @property
    def locale(self) -> str:
        saved = self.storage.get(LOCALE_KEY)
        if saved in SUPPORTED_LOCALES:
            return saved
        return DEFAULT_LOCALE

    @locale.setter
    def locale(self, value: str) -> None:
        if value not in SUPPORTED_LOCALES:
            raise ValueError(f"unsupported locale: {value}")
        self.storage.set(LOCALE_KEY, value)
