from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

import httpx

from .errors import TransportError, UnauthorizedError
from .session import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
API_PREFIX = "/api"


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    parsed = urlparse(trimmed)
    # "host:port" parses with the host as scheme and no netloc.
    if parsed.scheme and parsed.netloc:
        return trimmed
    return f"http://{trimmed}"


def _snippet(text: str, limit: int = 240) -> str:
    cleaned = text.strip()
    if len(cleaned) > limit:
        return f"{cleaned[:limit]}..."
    return cleaned


class GdWatchClient:
    """Authenticated access to the GD Watcher HTTP API.

    Every request carries the basic credential held by the session.  A 401
    from any call runs ``on_unauthorized`` before :class:`UnauthorizedError`
    is raised, so no authenticated state survives a rejected credential.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        on_unauthorized: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        root = build_base_url(base_url)
        if not root:
            raise ValueError("missing service address")
        self.base_url = root
        self.session = session
        self.on_unauthorized = on_unauthorized or session.teardown
        self._http = httpx.AsyncClient(
            base_url=f"{root}{API_PREFIX}",
            timeout=timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> GdWatchClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        credential: str | None = None,
        handle_unauthorized: bool = True,
    ) -> httpx.Response:
        headers: dict[str, str] = {"Accept": "application/json"}
        token = credential if credential is not None else self.session.credential
        if token:
            headers["Authorization"] = f"Basic {token}"
        try:
            response = await self._http.request(
                method, path, json=body, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        status = response.status_code
        if status == 401:
            logger.warning("service rejected credentials", extra={"path": path})
            if handle_unauthorized:
                self.on_unauthorized()
            raise UnauthorizedError(f"{method} {path} unauthorized")
        if status >= 400:
            detail = _snippet(response.text)
            message = f"{method} {path} returned {status}"
            if detail:
                message = f"{message}: {detail}"
            raise TransportError(message, status=status)
        return response

    @staticmethod
    def _json_object(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(f"non_json_response: {_snippet(response.text)}") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"unexpected_json_type: {type(payload).__name__}")
        return payload

    # Config ----------------------------------------------------------------

    async def fetch_config(self) -> dict[str, Any] | str:
        """Return the stored configuration, as parsed JSON or raw text."""
        response = await self._request("GET", "/config/get")
        if "json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    async def update_config(self, document: dict[str, Any]) -> str:
        response = await self._request("POST", "/config/update", body=document)
        return response.text

    async def probe_config(self, credential: str) -> None:
        await self._request(
            "GET", "/config/get", credential=credential, handle_unauthorized=False
        )

    # Auth ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/auth/login",
            body={"username": username, "password": password},
            credential="",
            handle_unauthorized=False,
        )
        return self._json_object(response)

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout", handle_unauthorized=False)

    async def fetch_oauth_login_url(self) -> str:
        payload = self._json_object(await self._request("GET", "/auth/login_url"))
        url = payload.get("url")
        if not isinstance(url, str) or not url:
            raise TransportError("login url missing from response")
        return url

    # Logs ------------------------------------------------------------------

    async def fetch_logs(self, since: int = 0) -> dict[str, Any]:
        params = {"since": since} if since else None
        return self._json_object(await self._request("GET", "/logs", params=params))

    async def clear_memory_logs(self) -> None:
        await self._request("POST", "/logs/clear_mem")

    async def clear_log_files(self) -> None:
        await self._request("POST", "/logs/clear_files")

    # Actions ---------------------------------------------------------------

    async def trigger_sync(self) -> None:
        await self._request("POST", "/trigger")

    async def trigger_full_refresh(self) -> None:
        await self._request("POST", "/rclone_full")

    async def rebuild_index(self) -> None:
        await self._request("POST", "/tree/refresh")

    async def test_notification(self, path: str) -> None:
        await self._request("POST", "/test_symedia", body={"path": path})

    async def fetch_status(self) -> dict[str, Any]:
        return self._json_object(await self._request("GET", "/status"))
