"""Retry decisions for connection setup and dropped connections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pushclient.auth.credentials import CredentialVariant
from pushclient.config import ClientSettings
from pushclient.network.disconnect import DisconnectKind, DisconnectReason

RATE_LIMIT_DELAY_SECONDS = 30.0
RECONNECT_DELAY_SECONDS = 5.0

FATAL_KINDS = frozenset(
    {
        DisconnectKind.UNKNOWN_SUBSCRIPTION,
        DisconnectKind.MISSING_SUBSCRIPTION,
        DisconnectKind.SUBSCRIBER_OR_SUBSCRIPTION_LIMIT_EXCEEDED,
        DisconnectKind.PROTOCOL_ERROR,
        DisconnectKind.SHUTDOWN,
    }
)

# Server-initiated closes; delayed even after a completed handshake.
SERVER_CLOSE_KINDS = frozenset({DisconnectKind.SERVER_INTERNAL_ERROR, DisconnectKind.UNRECOGNIZED})


@dataclass(frozen=True)
class RetryDecision:
    delay_seconds: float = 0.0
    refresh_credential: bool = False
    drop_reconnect_token: bool = False
    fatal: bool = False


FATAL = RetryDecision(fatal=True)


def decide(
    reason: DisconnectReason,
    variant: CredentialVariant,
    *,
    during_setup: bool = True,
    refresh_attempted: bool = False,
    holds_reconnect_token: bool = True,
    settings: Optional[ClientSettings] = None,
) -> RetryDecision:
    """Decide what happens before the next connection attempt.

    ``during_setup`` is False when a connection that had completed its handshake
    dropped; plain transport failures then reconnect at once instead of waiting,
    while server-sent closes still wait the reconnect delay.
    ``refresh_attempted`` marks that the credential was already refreshed since the
    last successful handshake, so a second rejection is final.
    ``holds_reconnect_token`` is whether the session currently stores a token that
    the next attempt would send.
    """

    rate_limit_delay = settings.rate_limit_delay_seconds if settings else RATE_LIMIT_DELAY_SECONDS
    reconnect_delay = settings.reconnect_delay_seconds if settings else RECONNECT_DELAY_SECONDS
    kind = reason.kind

    if kind in FATAL_KINDS:
        return FATAL
    if reason.is_credential_rejection:
        if variant is CredentialVariant.BEARER_TOKEN and not refresh_attempted:
            return RetryDecision(refresh_credential=True)
        return FATAL
    if kind is DisconnectKind.RATE_LIMITED:
        return RetryDecision(delay_seconds=rate_limit_delay)
    if kind is DisconnectKind.INVALID_RECONNECT_TOKEN:
        if not holds_reconnect_token:
            return FATAL
        return RetryDecision(drop_reconnect_token=True)
    if during_setup or kind in SERVER_CLOSE_KINDS:
        return RetryDecision(delay_seconds=reconnect_delay)
    return RetryDecision()
