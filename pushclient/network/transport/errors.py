"""Transport-neutral errors raised by every transport implementation."""

from __future__ import annotations

from typing import Optional


class TransportError(RuntimeError):
    """Raised for I/O failures that are not a peer close."""


class TransportClosed(TransportError):
    """Raised when the connection was closed, with the peer's close code when one was sent."""

    def __init__(self, code: Optional[int] = None, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"connection closed (code={code}, reason={reason!r})")


class TransportSetupError(TransportError):
    """Raised when the connection upgrade fails; ``status`` is the HTTP status if the server answered."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)
