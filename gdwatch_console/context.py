from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from .auth import LoginResult, LoginStrategy
from .client import GdWatchClient
from .config import ConsoleConfig
from .errors import ConsoleError
from .logs import LogsStore
from .session import LocalStorage, SessionStore
from .store import ConfigStore

logger = logging.getLogger(__name__)


class ConsoleContext:
    """Owns the session, HTTP client and stores for one console run.

    Consumers receive the context explicitly; nothing here is global.  The
    configuration held by :attr:`config_store` lives only as long as the
    context.
    """

    def __init__(
        self,
        settings: ConsoleConfig,
        *,
        session: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.session = session or SessionStore(LocalStorage(settings.session_file))
        self.session.check_auth()
        self.client = GdWatchClient(
            settings.base_url,
            self.session,
            timeout_s=settings.timeout_s,
            on_unauthorized=self.handle_unauthorized,
            transport=transport,
        )
        self.config_store = ConfigStore(self.client)
        self.logs_store = LogsStore(self.client)
        self.reloads = 0

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        settings: ConsoleConfig,
        *,
        session: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncIterator[ConsoleContext]:
        ctx = cls(settings, session=session, transport=transport)
        try:
            yield ctx
        finally:
            await ctx.close()

    def handle_unauthorized(self) -> None:
        """Tear down the session and drop all state loaded under it."""
        self.session.teardown()
        self.config_store.reset()
        self.logs_store.raw_logs = []
        self.reloads += 1

    async def login(
        self, username: str, password: str, *, strategy: LoginStrategy | None = None
    ) -> LoginResult:
        result = await (strategy or LoginStrategy()).login(
            self.client, self.session, username, password
        )
        if result.success:
            logger.info("logged in as %s via %s", username, result.step)
        return result

    async def logout(self) -> None:
        try:
            await self.client.logout()
        except ConsoleError as exc:
            logger.warning("service logout failed", exc_info=exc)
        self.session.logout()
        self.config_store.reset()

    async def close(self) -> None:
        self.config_store.reset()
        await self.client.aclose()
