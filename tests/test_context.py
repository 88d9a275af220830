from __future__ import annotations

import asyncio
from pathlib import Path

import httpx

from gdwatch_console.config import ConsoleConfig
from gdwatch_console.context import ConsoleContext
from gdwatch_console.session import JUST_LOGGED_OUT_KEY, LocalStorage, SessionStore


def _settings(tmp_path: Path) -> ConsoleConfig:
    return ConsoleConfig(base_url="http://svc:8448", session_path=str(tmp_path / "s.json"))


def _logged_in(tmp_path: Path) -> SessionStore:
    session = SessionStore(LocalStorage(tmp_path / "s.json"))
    session.login("admin", "Y3JlZA==")
    return session


def test_context_restores_session(tmp_path: Path) -> None:
    _logged_in(tmp_path)

    async def scenario() -> tuple[bool, str]:
        async with ConsoleContext.open(_settings(tmp_path)) as ctx:
            return ctx.session.authenticated, ctx.session.user_name

    assert asyncio.run(scenario()) == (True, "admin")


def test_unauthorized_response_tears_everything_down(tmp_path: Path) -> None:
    _logged_in(tmp_path)
    responses = iter(
        [
            httpx.Response(200, json={"server": {"listen_port": 9000}}),
            httpx.Response(200, json={"logs": ["[t] INFO: hi"], "next_idx": 1}),
            httpx.Response(401),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    async def scenario() -> ConsoleContext:
        async with ConsoleContext.open(
            _settings(tmp_path), transport=httpx.MockTransport(handler)
        ) as ctx:
            assert await ctx.config_store.load() is True
            assert await ctx.logs_store.fetch() is True
            assert await ctx.config_store.load() is False
            assert ctx.config_store.value is None
            assert ctx.logs_store.count == 0
            return ctx

    ctx = asyncio.run(scenario())

    assert ctx.reloads == 1
    assert ctx.session.authenticated is False
    assert ctx.session.credential is None
    assert LocalStorage(tmp_path / "s.json").get(JUST_LOGGED_OUT_KEY) is None


def test_login_through_context(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/auth/login"
        return httpx.Response(200, json={"status": "ok"})

    async def scenario() -> bool:
        async with ConsoleContext.open(
            _settings(tmp_path), transport=httpx.MockTransport(handler)
        ) as ctx:
            result = await ctx.login("admin", "secret")
            return result.success

    assert asyncio.run(scenario()) is True
    restored = SessionStore(LocalStorage(tmp_path / "s.json"))
    assert restored.check_auth() is True
    assert restored.credential == "YWRtaW46c2VjcmV0"


def test_logout_clears_locally_even_when_service_fails(tmp_path: Path) -> None:
    _logged_in(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async def scenario() -> ConsoleContext:
        async with ConsoleContext.open(
            _settings(tmp_path), transport=httpx.MockTransport(handler)
        ) as ctx:
            await ctx.logout()
            return ctx

    ctx = asyncio.run(scenario())

    assert ctx.session.authenticated is False
    storage = LocalStorage(tmp_path / "s.json")
    assert storage.get("basic_auth") is None
    assert storage.get(JUST_LOGGED_OUT_KEY) == "true"


def test_close_drops_loaded_config(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    async def scenario() -> ConsoleContext:
        async with ConsoleContext.open(
            _settings(tmp_path), transport=httpx.MockTransport(handler)
        ) as ctx:
            await ctx.config_store.load()
            assert ctx.config_store.is_loaded
            return ctx

    ctx = asyncio.run(scenario())
    assert ctx.config_store.value is None
