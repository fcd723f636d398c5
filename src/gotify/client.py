"""Async Gotify REST client with separate send and management scopes."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from src.core.config import GotifyConfig, get_settings
from src.core.types import OutboundMessage, ServerVersion, SinkApplication, SinkMessage
from src.gotify.exceptions import (
    GotifyAPIError,
    GotifyConnectionError,
    GotifyError,
    GotifyParseError,
)

logger = structlog.stdlib.get_logger()

_AUTH_HEADER = "X-Gotify-Key"


def _error_description(response: httpx.Response) -> str:
    """Pull ``errorDescription`` out of a Gotify error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("errorDescription") or body.get("error") or "")
    return ""


class GotifyClient:
    """Thin async wrapper around the Gotify HTTP API.

    Credentials are not used directly; callers get a scoped handle:

    - :meth:`sender` — application token, may only create messages.
    - :meth:`manager` — client token, may list applications and
      list/delete messages.

    Usage::

        async with GotifyClient(config) as client:
            version = await client.get_version()
            await client.sender().create_message(msg)
    """

    def __init__(
        self,
        config: GotifyConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_settings().gotify
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._config.url

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> None:
        """Create the httpx async client."""
        self._http = httpx.AsyncClient(
            base_url=self._config.url,
            timeout=httpx.Timeout(self._config.timeout_secs),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> GotifyClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── Scoped handles ───────────────────────────────────────────

    def sender(self) -> MessageSender:
        return MessageSender(self, self._config.token.get_secret_value())

    def manager(self) -> MessageManager:
        token = self._config.client_token.get_secret_value()
        if not token:
            raise GotifyError("no client token configured for management calls")
        return MessageManager(self, token, page_limit=self._config.page_limit)

    # ── Unauthenticated ──────────────────────────────────────────

    async def get_version(self) -> ServerVersion:
        """Fetch ``/version``, used as a connectivity check."""
        body = await self.request("GET", "/version")
        return _parse(ServerVersion, body)

    # ── Transport ────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Perform one API call and return the decoded JSON body (or None).

        Raises:
            GotifyConnectionError: transport failure or client not connected.
            GotifyAPIError: non-2xx response.
            GotifyParseError: 2xx response whose body is not JSON.
        """
        if self._http is None:
            raise GotifyConnectionError("HTTP client not connected")

        headers = {_AUTH_HEADER: token} if token else None
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GotifyAPIError(
                exc.response.status_code,
                _error_description(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            raise GotifyConnectionError(f"Gotify {method} {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GotifyParseError(f"Gotify {method} {path} returned invalid JSON") from exc


def _parse(model: Any, body: Any) -> Any:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise GotifyParseError(f"unexpected {model.__name__} payload: {exc}") from exc


class MessageSender:
    """Send-scoped handle (application token)."""

    def __init__(self, client: GotifyClient, token: str) -> None:
        self._client = client
        self._token = token

    async def create_message(self, msg: OutboundMessage) -> SinkMessage:
        body = await self._client.request(
            "POST", "/message", token=self._token, json=msg.to_payload()
        )
        return _parse(SinkMessage, body)


class MessageManager:
    """Management-scoped handle (client token)."""

    def __init__(self, client: GotifyClient, token: str, page_limit: int = 100) -> None:
        self._client = client
        self._token = token
        self._page_limit = page_limit

    async def list_applications(self) -> list[SinkApplication]:
        body = await self._client.request("GET", "/application", token=self._token)
        if not isinstance(body, list):
            raise GotifyParseError("application list is not a JSON array")
        return [_parse(SinkApplication, raw) for raw in body]

    async def list_app_messages(self, app_id: int) -> list[SinkMessage]:
        """All messages of one application, newest first.

        Gotify pages with ``since`` (exclusive upper message id); pages are
        followed until the server reports no ``next`` page.
        """
        messages: list[SinkMessage] = []
        since: int | None = None
        while True:
            params: dict[str, int] = {"limit": self._page_limit}
            if since is not None:
                params["since"] = since
            body = await self._client.request(
                "GET",
                f"/application/{app_id}/message",
                token=self._token,
                params=params,
            )
            if not isinstance(body, dict):
                raise GotifyParseError("paged message list is not a JSON object")

            page = [_parse(SinkMessage, raw) for raw in body.get("messages") or []]
            messages.extend(page)

            paging = body.get("paging") or {}
            next_since = paging.get("since")
            if not page or not paging.get("next") or not isinstance(next_since, int):
                break
            # The cursor must move strictly downwards.
            if since is not None and next_since >= since:
                logger.warning("gotify_paging_stalled", app_id=app_id, since=since)
                break
            since = next_since

        return messages

    async def delete_message(self, message_id: int) -> None:
        await self._client.request("DELETE", f"/message/{message_id}", token=self._token)
