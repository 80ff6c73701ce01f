"""Network stack (transport/session/keepalive) for the push subscription socket."""

from pushclient.network.backoff import RetryDecision, decide
from pushclient.network.disconnect import (
    DisconnectKind,
    DisconnectReason,
    classify_close_code,
    classify_error,
    classify_setup_status,
)
from pushclient.network.keepalive import KeepaliveLoop
from pushclient.network.pipeline import HandshakeError, MessagePipeline, decode_handshake
from pushclient.network.session import Session, start_session
from pushclient.network.session_state import SessionState, SessionTracker
from pushclient.network.transport import (
    BaseTransport,
    DummyTransport,
    TransportClosed,
    TransportError,
    TransportSetupError,
    WebSocketTransport,
)

__all__ = [
    "BaseTransport",
    "DisconnectKind",
    "DisconnectReason",
    "DummyTransport",
    "HandshakeError",
    "KeepaliveLoop",
    "MessagePipeline",
    "RetryDecision",
    "Session",
    "SessionState",
    "SessionTracker",
    "TransportClosed",
    "TransportError",
    "TransportSetupError",
    "WebSocketTransport",
    "classify_close_code",
    "classify_error",
    "classify_setup_status",
    "decide",
    "decode_handshake",
    "start_session",
]
