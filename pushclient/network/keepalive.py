"""Periodic liveness pings against whichever transport the session currently owns."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pushclient.network.session import Session

LOGGER = logging.getLogger(__name__)


class KeepaliveLoop:
    """Sends a ping every ``interval`` seconds.

    It holds the session, not a transport, so a reconnect's transport swap is
    picked up on the next tick. Failed pings are logged only; detecting a dead
    connection is left to the session's read loop.
    """

    def __init__(self, session: "Session", *, interval: float, timeout: float) -> None:
        self._session = session
        self._interval = interval
        self._timeout = timeout
        self._task: Optional[asyncio.Task[None]] = None
        self.sent = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or self._interval <= 0:
            return
        self._task = asyncio.create_task(self._run(), name="push-keepalive")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            transport = self._session.transport
            if transport is None:
                LOGGER.debug("Keepalive skipped; no transport")
                continue
            try:
                await transport.ping(self._timeout)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                self.failed += 1
                LOGGER.warning("Keepalive ping failed: %s", exc or type(exc).__name__)
            else:
                self.sent += 1
