"""Errors raised by the control-plane and token HTTP clients."""

from __future__ import annotations

from typing import Optional


class ApiClientError(Exception):
    """Base error for push service HTTP operations."""


class ApiRequestError(ApiClientError):
    """Raised for transport failures and unexpected statuses; ``status`` is None when no response arrived."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class ApiUnauthorizedError(ApiRequestError):
    """Raised when the service rejects the credential."""


class ApiNotFoundError(ApiRequestError):
    """Raised when the service returns 404."""


__all__ = [
    "ApiClientError",
    "ApiRequestError",
    "ApiUnauthorizedError",
    "ApiNotFoundError",
]
