"""Resilient push subscription session.

The session owns exactly one transport at a time and drives it through:
- Connection setup (credential + upgrade) with retry decisions from ``backoff``
- The mandatory init handshake and reconnect-token bookkeeping
- The read loop that feeds the message pipeline and detects disconnects
- Reconnection carrying the last reconnect token forward

All state transitions happen inside the session's own run task; the keepalive
loop only ever sends pings through ``Session.transport``.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode

from pushclient.auth.credentials import Credential, CredentialError
from pushclient.config import ClientSettings
from pushclient.models import PushEvent
from pushclient.network.backoff import decide
from pushclient.network.disconnect import DisconnectKind, DisconnectReason, classify_error
from pushclient.network.keepalive import KeepaliveLoop
from pushclient.network.pipeline import HandshakeError, MessagePipeline, decode_handshake
from pushclient.network.session_state import SessionState, SessionTracker
from pushclient.network.transport import (
    BaseTransport,
    DummyTransport,
    TransportClosed,
    WebSocketTransport,
)

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[PushEvent], Awaitable[None] | None]
TerminatedHandler = Callable[[DisconnectReason], Awaitable[None] | None]


def default_transport_factory(settings: ClientSettings) -> BaseTransport:
    if settings.transport == "dummy":
        return DummyTransport(settings)
    return WebSocketTransport(settings)


@dataclass
class Session:
    """Client-side session for one push subscription."""

    settings: ClientSettings
    subscription_identity: str
    credential: Credential
    transport_factory: Callable[[ClientSettings], BaseTransport] = default_transport_factory
    reconnect_token: Optional[str] = None
    endpoint: Optional[str] = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    tracker: SessionTracker = field(init=False)
    transport: Optional[BaseTransport] = field(default=None, init=False, repr=False)
    connect_attempts: int = field(default=0, init=False)
    reconnects: int = field(default=0, init=False)
    _pipeline: MessagePipeline = field(default_factory=MessagePipeline, init=False, repr=False)
    _keepalive: KeepaliveLoop = field(init=False, repr=False)
    _task: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)
    _event_handlers: list[EventHandler] = field(default_factory=list, init=False, repr=False)
    _terminated_handlers: list[TerminatedHandler] = field(default_factory=list, init=False, repr=False)
    _terminated: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _termination: Optional[DisconnectReason] = field(default=None, init=False, repr=False)
    _refresh_attempted: bool = field(default=False, init=False, repr=False)
    _events_delivered: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.subscription_identity:
            raise ValueError("subscription_identity is required")
        self.endpoint = self.endpoint or str(self.settings.ws_url)
        self.tracker = SessionTracker(
            subscription_identity=str(self.subscription_identity),
            reconnect_token=self.reconnect_token or None,
        )
        self._keepalive = KeepaliveLoop(
            self,
            interval=self.settings.keepalive_interval_seconds,
            timeout=self.settings.keepalive_timeout_seconds,
        )

    @property
    def state(self) -> SessionState:
        return self.tracker.state

    @property
    def current_reconnect_token(self) -> Optional[str]:
        return self.tracker.reconnect_token

    @property
    def termination(self) -> Optional[DisconnectReason]:
        return self._termination

    def on_event(self, handler: EventHandler) -> None:
        """Register a consumer; handlers run one event at a time, in arrival order."""

        self._event_handlers.append(handler)

    def on_terminated(self, handler: TerminatedHandler) -> None:
        self._terminated_handlers.append(handler)

    def start(self) -> None:
        """Begin connecting in the background."""

        if self._task is not None or self.tracker.terminated:
            return
        self._task = asyncio.create_task(self._run(), name="push-session")
        self._keepalive.start()

    async def stop(self) -> None:
        """Shut down: cancel the run loop, send a best-effort close frame, terminate."""

        task = self._task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._terminate(DisconnectReason(DisconnectKind.SHUTDOWN, detail="session stopped"))
        await self._keepalive.stop()

    async def wait_terminated(self) -> DisconnectReason:
        await self._terminated.wait()
        assert self._termination is not None
        return self._termination

    def build_url(self, params: Optional[dict[str, str]] = None) -> str:
        query: dict[str, str] = {"subscription_id": self.tracker.subscription_identity}
        if self.tracker.reconnect_token:
            query["reconnect_token"] = self.tracker.reconnect_token
        query.update(params or {})
        assert self.endpoint is not None
        separator = "&" if "?" in self.endpoint else "?"
        return f"{self.endpoint}{separator}{urlencode(query)}"

    def metrics(self) -> dict[str, Any]:
        last_failure = self.tracker.last_failure
        return {
            "state": self.tracker.state.value,
            "subscriber_id": self.tracker.subscriber_id,
            "connect_attempts": self.connect_attempts,
            "reconnects": self.reconnects,
            "events_delivered": self._events_delivered,
            "events_dropped": self._pipeline.dropped,
            "last_latency_ms": self._pipeline.last_latency_ms,
            "keepalive_failures": self._keepalive.failed,
            "last_failure": str(last_failure) if last_failure else None,
        }

    async def _run(self) -> None:
        try:
            reason = await self._drive()
        except asyncio.CancelledError:
            LOGGER.debug("Session run loop cancelled")
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Session run loop crashed")
            reason = DisconnectReason(DisconnectKind.PROTOCOL_ERROR, detail=str(exc))
        await self._terminate(reason)

    async def _drive(self) -> DisconnectReason:
        self._transition(SessionState.CONNECTING)
        while True:
            failure = await self._connect_once()
            during_setup = failure is not None
            if failure is None:
                failure = await self._read_until_disconnect()
                if self.tracker.terminated:
                    return failure

            self.tracker.last_failure = failure
            decision = decide(
                failure,
                self.credential.variant,
                during_setup=during_setup,
                refresh_attempted=self._refresh_attempted,
                holds_reconnect_token=self.tracker.reconnect_token is not None,
                settings=self.settings,
            )
            if decision.fatal:
                LOGGER.error("Session cannot continue: %s %s", failure, failure.detail)
                return failure
            LOGGER.warning("Connection lost (%s); reconnecting", failure)

            if decision.drop_reconnect_token:
                LOGGER.info("Dropping rejected reconnect token")
                self.tracker.reconnect_token = None
            if decision.refresh_credential:
                self._refresh_attempted = True
                try:
                    await asyncio.to_thread(self.credential.refresh)
                except Exception as exc:  # noqa: BLE001
                    LOGGER.error("Credential refresh failed: %s", exc)
                    return failure

            if self.state is SessionState.CONNECTING:
                self._transition(SessionState.CONNECTING)
            else:
                self._transition(SessionState.RECONNECTING)
                self.reconnects += 1
                self._transition(SessionState.CONNECTING)
            if decision.delay_seconds > 0:
                LOGGER.info("Waiting %.1fs before the next connection attempt", decision.delay_seconds)
                await self.sleep(decision.delay_seconds)

    async def _connect_once(self) -> Optional[DisconnectReason]:
        """Run the setup protocol; returns None once ACTIVE, or the reason setup failed."""

        self.connect_attempts += 1
        headers: dict[str, str] = {}
        params: dict[str, str] = {}
        try:
            await asyncio.to_thread(self.credential.apply, headers, params)
        except CredentialError as exc:
            LOGGER.warning("Credential unavailable: %s", exc)
            if exc.retryable:
                return DisconnectReason(DisconnectKind.TRANSPORT_LEVEL_ERROR, detail=str(exc))
            self._refresh_attempted = True
            return DisconnectReason(DisconnectKind.MISSING_OR_INVALID_CREDENTIAL, detail=str(exc))

        transport = self.transport_factory(self.settings)
        try:
            await transport.connect(self.build_url(params), headers)
        except Exception as exc:  # noqa: BLE001
            reason = classify_error(exc)
            LOGGER.warning("Connect attempt %s failed: %s (%s)", self.connect_attempts, reason, exc)
            return reason

        # The previous transport was already dropped when it disconnected.
        self.transport = transport
        self._transition(SessionState.AWAITING_HANDSHAKE)
        try:
            raw = await asyncio.wait_for(transport.receive(), timeout=self.settings.handshake_timeout_seconds)
        except TransportClosed as exc:
            self.transport = None
            return classify_error(exc)
        except asyncio.TimeoutError:
            return DisconnectReason(DisconnectKind.PROTOCOL_ERROR, detail="no init frame received")
        except Exception as exc:  # noqa: BLE001
            return DisconnectReason(DisconnectKind.PROTOCOL_ERROR, detail=f"init frame read failed: {exc}")

        try:
            handshake = decode_handshake(raw)
        except HandshakeError as exc:
            return DisconnectReason(DisconnectKind.PROTOCOL_ERROR, detail=str(exc))

        self.tracker.record_handshake(
            str(handshake.subscriber_id),
            handshake.token(),
            retain_on_empty=self.settings.retain_reconnect_token_on_empty,
        )
        self._refresh_attempted = False
        self._transition(SessionState.ACTIVE)
        LOGGER.info(
            "Subscriber %s active (reconnected=%s, subscription=%s)",
            handshake.subscriber_id,
            handshake.reconnected,
            handshake.subscription.id or handshake.subscription.name,
        )
        return None

    async def _read_until_disconnect(self) -> DisconnectReason:
        transport = self.transport
        assert transport is not None
        while True:
            try:
                raw = await transport.receive()
            except TransportClosed as exc:
                self.transport = None
                return classify_error(exc)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Unrecoverable read error: %s", exc)
                return DisconnectReason(DisconnectKind.PROTOCOL_ERROR, detail=f"read failed: {exc}")
            event = self._pipeline.decode(raw)
            if event is not None:
                await self._deliver(event)

    async def _deliver(self, event: PushEvent) -> None:
        self._events_delivered += 1
        for handler in list(self._event_handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Push event handler failed for uuid=%s", event.uuid)

    async def _terminate(self, reason: DisconnectReason) -> None:
        if self.tracker.terminated:
            return
        self.tracker.transition(SessionState.TERMINATED)
        if reason.kind is not DisconnectKind.SHUTDOWN:
            self.tracker.last_failure = reason
        self._termination = reason
        transport = self.transport
        self.transport = None
        if transport is not None:
            try:
                await transport.close()
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Failed to send close frame: %s", exc)
        if self.settings.stop_keepalive_on_terminate and self._keepalive.running:
            await self._keepalive.stop()
        self._terminated.set()
        for handler in list(self._terminated_handlers):
            try:
                result = handler(reason)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress session terminated callback error", exc_info=True)

    def _transition(self, state: SessionState) -> None:
        previous = self.tracker.state
        self.tracker.transition(state)
        if previous is not state:
            LOGGER.debug("Session %s -> %s", previous.value, state.value)


def start_session(
    endpoint: str,
    subscription_identity: str,
    credential: Credential,
    *,
    reconnect_token: Optional[str] = None,
    settings: Optional[ClientSettings] = None,
    transport_factory: Callable[[ClientSettings], BaseTransport] = default_transport_factory,
    on_event: Optional[EventHandler] = None,
    on_terminated: Optional[TerminatedHandler] = None,
) -> Session:
    """Create a session and start connecting; must be called from a running event loop."""

    session = Session(
        settings=settings or ClientSettings(),
        subscription_identity=subscription_identity,
        credential=credential,
        transport_factory=transport_factory,
        reconnect_token=reconnect_token,
        endpoint=endpoint,
    )
    if on_event:
        session.on_event(on_event)
    if on_terminated:
        session.on_terminated(on_terminated)
    session.start()
    return session
