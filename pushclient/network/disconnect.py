"""Classification of why a connection stopped being usable."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from pushclient.network.transport.errors import TransportClosed, TransportSetupError

APP_CLOSE_CODE_MIN = 4000
APP_CLOSE_CODE_MAX = 4999


class DisconnectKind(enum.Enum):
    MISSING_OR_INVALID_CREDENTIAL = "missing_or_invalid_credential"
    NOT_AUTHORIZED = "not_authorized"
    RATE_LIMITED = "rate_limited"
    UNKNOWN_SUBSCRIPTION = "unknown_subscription"
    MISSING_SUBSCRIPTION = "missing_subscription"
    INVALID_RECONNECT_TOKEN = "invalid_reconnect_token"
    SUBSCRIBER_OR_SUBSCRIPTION_LIMIT_EXCEEDED = "subscriber_or_subscription_limit_exceeded"
    SERVER_INTERNAL_ERROR = "server_internal_error"
    TRANSPORT_LEVEL_ERROR = "transport_level_error"
    UNRECOGNIZED = "unrecognized"
    # Local outcomes; never derived from a close code.
    PROTOCOL_ERROR = "protocol_error"
    SHUTDOWN = "shutdown"


CLOSE_CODES: dict[int, DisconnectKind] = {
    4000: DisconnectKind.MISSING_OR_INVALID_CREDENTIAL,
    4001: DisconnectKind.NOT_AUTHORIZED,
    4002: DisconnectKind.RATE_LIMITED,
    4003: DisconnectKind.SERVER_INTERNAL_ERROR,
    4004: DisconnectKind.MISSING_SUBSCRIPTION,
    4005: DisconnectKind.INVALID_RECONNECT_TOKEN,
    4006: DisconnectKind.SUBSCRIBER_OR_SUBSCRIPTION_LIMIT_EXCEEDED,
    4007: DisconnectKind.UNKNOWN_SUBSCRIPTION,
}

SETUP_STATUSES: dict[int, DisconnectKind] = {
    401: DisconnectKind.MISSING_OR_INVALID_CREDENTIAL,
    403: DisconnectKind.NOT_AUTHORIZED,
    404: DisconnectKind.UNKNOWN_SUBSCRIPTION,
    429: DisconnectKind.RATE_LIMITED,
}


@dataclass(frozen=True)
class DisconnectReason:
    """Immutable classification of one disconnect event."""

    kind: DisconnectKind
    code: Optional[int] = None
    detail: str = ""

    def __str__(self) -> str:
        if self.code is None:
            return self.kind.value
        return f"{self.kind.value} ({self.code})"

    @property
    def is_credential_rejection(self) -> bool:
        return self.kind in {DisconnectKind.MISSING_OR_INVALID_CREDENTIAL, DisconnectKind.NOT_AUTHORIZED}


def classify_close_code(code: Optional[int], detail: str = "") -> DisconnectReason:
    """Map a peer close code to a reason; total over every integer and ``None``."""

    if code is None or not APP_CLOSE_CODE_MIN <= code <= APP_CLOSE_CODE_MAX:
        return DisconnectReason(DisconnectKind.TRANSPORT_LEVEL_ERROR, code, detail)
    kind = CLOSE_CODES.get(code, DisconnectKind.UNRECOGNIZED)
    return DisconnectReason(kind, code, detail)


def classify_setup_status(status: Optional[int], detail: str = "") -> DisconnectReason:
    """Map the HTTP status of a rejected upgrade to a reason."""

    if status is None:
        return DisconnectReason(DisconnectKind.TRANSPORT_LEVEL_ERROR, None, detail)
    if status in SETUP_STATUSES:
        return DisconnectReason(SETUP_STATUSES[status], None, detail)
    if status >= 500:
        return DisconnectReason(DisconnectKind.SERVER_INTERNAL_ERROR, None, detail)
    return DisconnectReason(DisconnectKind.TRANSPORT_LEVEL_ERROR, None, detail)


def classify_error(exc: BaseException) -> DisconnectReason:
    """Classify a transport exception raised while connecting or reading."""

    if isinstance(exc, TransportClosed):
        return classify_close_code(exc.code, exc.reason)
    if isinstance(exc, TransportSetupError):
        return classify_setup_status(exc.status, str(exc))
    return DisconnectReason(DisconnectKind.TRANSPORT_LEVEL_ERROR, None, str(exc) or type(exc).__name__)
