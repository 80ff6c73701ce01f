"""Transport implementations for the push service socket."""

from .base import BaseTransport
from .dummy import DummyTransport
from .errors import TransportClosed, TransportError, TransportSetupError
from .websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "DummyTransport",
    "TransportClosed",
    "TransportError",
    "TransportSetupError",
    "WebSocketTransport",
]
