"""Console login.

The service may expose a dedicated login endpoint, or only check basic
credentials on each protected endpoint.  :class:`LoginStrategy` covers both
by running two steps in order: a structured login call, and, only when that
call fails outright, a probe read of the configuration with the derived
credential.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from .client import GdWatchClient
from .errors import ConsoleError
from .session import SessionStore

logger = logging.getLogger(__name__)

AUTH_FAILED = "Authentication failed"


def derive_credential(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


@dataclass(frozen=True)
class LoginResult:
    success: bool
    message: str | None = None
    step: str | None = None


class LoginStep(Protocol):
    name: str

    async def attempt(self, client: GdWatchClient, username: str, password: str) -> bool: ...


class StructuredLogin:
    """POST the identity pair to the login endpoint."""

    name = "login"

    async def attempt(self, client: GdWatchClient, username: str, password: str) -> bool:
        payload = await client.login(username, password)
        return payload.get("status") == "ok" or payload.get("success") is True


class ProbeLogin:
    """Read the configuration using the derived credential directly."""

    name = "probe"

    async def attempt(self, client: GdWatchClient, username: str, password: str) -> bool:
        await client.probe_config(derive_credential(username, password))
        return True


class LoginStrategy:
    def __init__(self, primary: LoginStep | None = None, fallback: LoginStep | None = None) -> None:
        self.primary = primary or StructuredLogin()
        self.fallback = fallback or ProbeLogin()

    async def login(
        self,
        client: GdWatchClient,
        session: SessionStore,
        username: str,
        password: str,
    ) -> LoginResult:
        try:
            accepted = await self.primary.attempt(client, username, password)
        except ConsoleError as exc:
            logger.info("%s step failed, trying %s", self.primary.name, self.fallback.name)
            logger.debug("login step error", exc_info=exc)
        else:
            if not accepted:
                return LoginResult(False, AUTH_FAILED, self.primary.name)
            return self._accept(session, username, password, self.primary.name)

        try:
            accepted = await self.fallback.attempt(client, username, password)
        except ConsoleError as exc:
            logger.debug("login fallback error", exc_info=exc)
            accepted = False
        if not accepted:
            return LoginResult(False, AUTH_FAILED, self.fallback.name)
        return self._accept(session, username, password, self.fallback.name)

    @staticmethod
    def _accept(session: SessionStore, username: str, password: str, step: str) -> LoginResult:
        session.login(username, derive_credential(username, password))
        return LoginResult(True, None, step)
