"""Process-level wiring: control-plane setup, the push session, and signal-driven shutdown."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
from typing import Optional

from pushclient.api import ApiClientError, PushApiClient
from pushclient.auth import build_credential
from pushclient.config import ClientSettings, get_settings
from pushclient.models import PushEvent, default_subscription
from pushclient.network import DisconnectKind, DisconnectReason, Session, start_session

LOGGER = logging.getLogger(__name__)


def _log_json(tag: str, raw: bytes) -> None:
    try:
        rendered = json.dumps(json.loads(raw), indent=3)
    except ValueError:
        rendered = raw.decode("utf-8", errors="replace")
    LOGGER.info("[%s] (%d bytes):\n%s", tag, len(raw), rendered)


async def _log_event(event: PushEvent) -> None:
    LOGGER.info("[MSG] %s", json.dumps(event.model_dump(mode="json")))


async def _resolve_subscription(settings: ClientSettings, api: PushApiClient) -> tuple[str, bool]:
    """Return ``(identity, created_here)``."""

    if settings.subscription_id:
        return settings.subscription_id, False
    subscription = default_subscription(settings.subscription_name)
    subscription_id, already_exists = await asyncio.to_thread(api.register_subscription, subscription)
    if already_exists:
        LOGGER.info("Subscription named %r already exists with id %s", subscription.name, subscription_id)
    else:
        LOGGER.info("Registered subscription %s", subscription_id)
    return str(subscription_id), not already_exists


async def _delete_subscription(api: PushApiClient, identity: str) -> None:
    try:
        await asyncio.to_thread(api.delete_subscription, identity)
    except ApiClientError as exc:
        LOGGER.warning("Failed to delete subscription %s: %s", identity, exc)
    else:
        LOGGER.info("Deleted subscription %s", identity)


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on some platforms
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)


async def run_forever(settings: Optional[ClientSettings] = None) -> int:
    """Run the client until a signal arrives or the session terminates; returns an exit code."""

    settings = settings or get_settings()
    credential = build_credential(settings)
    api = PushApiClient.from_settings(settings, credential)

    try:
        _log_json("PUSH CONFIG", await asyncio.to_thread(api.fetch_config))
        _log_json("EXISTING SUBSCRIPTIONS", await asyncio.to_thread(api.list_subscriptions))
        identity, created = await _resolve_subscription(settings, api)
    except ApiClientError as exc:
        LOGGER.error("Control-plane request failed: %s", exc)
        return 1

    stop = asyncio.Event()
    _install_signal_handlers(stop)

    session: Session = start_session(
        str(settings.ws_url),
        identity,
        credential,
        reconnect_token=settings.reconnect_token,
        settings=settings,
        on_event=_log_event,
    )

    stop_waiter = asyncio.create_task(stop.wait(), name="shutdown-signal")
    terminated_waiter = asyncio.create_task(session.wait_terminated(), name="session-terminated")
    try:
        await asyncio.wait({stop_waiter, terminated_waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_waiter.cancel()
        terminated_waiter.cancel()

    if stop.is_set():
        LOGGER.info("Shutdown requested")
    if created and settings.delete_subscription_on_exit:
        await _delete_subscription(api, identity)
    await session.stop()

    reason: Optional[DisconnectReason] = session.termination
    if session.current_reconnect_token:
        LOGGER.info("Last reconnect token: %s", session.current_reconnect_token)
    if reason is None or reason.kind is DisconnectKind.SHUTDOWN:
        return 0
    LOGGER.error("Session terminated: %s %s", reason, reason.detail)
    return 1
