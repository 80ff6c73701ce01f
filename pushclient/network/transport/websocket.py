"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, InvalidURI

from pushclient.config import ClientSettings
from pushclient.network.transport.base import BaseTransport
from pushclient.network.transport.errors import TransportClosed, TransportError, TransportSetupError

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket transport; liveness pings are driven by the session, not the library."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None

    async def connect(self, url: str, headers: Mapping[str, str]) -> None:
        LOGGER.info("Connecting to push service WebSocket at %s", _redact(url))
        try:
            self._ws = await connect(
                url,
                additional_headers=dict(headers),
                open_timeout=self._settings.connect_timeout_seconds,
                ping_interval=None,
                max_size=None,
            )
        except InvalidStatus as exc:
            raise TransportSetupError(str(exc), status=exc.response.status_code) from exc
        except (InvalidURI, InvalidHandshake, OSError, asyncio.TimeoutError) as exc:
            raise TransportSetupError(str(exc) or type(exc).__name__) from exc

    async def receive(self) -> str | bytes:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            close = exc.rcvd
            if close is None:
                raise TransportClosed(None, "") from exc
            raise TransportClosed(close.code, close.reason) from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        return raw

    async def ping(self, timeout: float) -> None:
        if not self._ws:
            raise TransportError("WebSocket transport not connected")
        # Only the write is bounded; the pong is not awaited.
        await asyncio.wait_for(self._ws.ping(b""), timeout=timeout)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close(code, reason)
            self._ws = None


def _redact(url: str) -> str:
    head, sep, query = url.partition("?")
    if not sep:
        return url
    parts = []
    for item in query.split("&"):
        key, _, _ = item.partition("=")
        parts.append(f"{key}=***" if key == "access_token" else item)
    return f"{head}?{'&'.join(parts)}"
