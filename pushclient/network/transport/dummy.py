"""Offline transport that replays queued frames."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping

from .base import BaseTransport
from .errors import TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """In-memory transport: frames and exceptions fed through ``feed`` are returned by ``receive``."""

    def __init__(self, settings=None, frames: Iterable[str | bytes | BaseException] = ()) -> None:
        self._settings = settings
        self._inbox: asyncio.Queue[str | bytes | BaseException] = asyncio.Queue()
        for frame in frames:
            self._inbox.put_nowait(frame)
        self.url: str | None = None
        self.headers: dict[str, str] = {}
        self.pings = 0
        self.closed_with: tuple[int, str] | None = None

    def feed(self, frame: str | bytes | BaseException) -> None:
        self._inbox.put_nowait(frame)

    async def connect(self, url: str, headers: Mapping[str, str]) -> None:
        LOGGER.debug("Dummy transport connect(%s)", url)
        self.url = url
        self.headers = dict(headers)

    async def receive(self) -> str | bytes:
        if self.closed_with is not None:
            raise TransportClosed(self.closed_with[0], self.closed_with[1])
        item = await self._inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def ping(self, timeout: float) -> None:
        if self.url is None:
            raise TransportError("Dummy transport not connected")
        self.pings += 1

    async def close(self, code: int = 1000, reason: str = "") -> None:
        LOGGER.debug("Dummy transport close(%s)", code)
        self.closed_with = (code, reason)
        self._inbox.put_nowait(TransportClosed(code, reason))
