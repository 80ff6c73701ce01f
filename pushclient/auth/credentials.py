"""Authentication material attached to socket upgrades and HTTP requests."""

from __future__ import annotations

import enum
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import MutableMapping, Optional

from pushclient.api.errors import ApiClientError, ApiRequestError
from pushclient.api.token_client import TokenClient
from pushclient.config import ClientSettings

LOGGER = logging.getLogger(__name__)

# Re-mint a little before the server-side expiry.
EXPIRY_MARGIN_SECONDS = 30.0


class CredentialVariant(enum.Enum):
    SECRET = "secret"
    BEARER_TOKEN = "bearer_token"


class CredentialError(RuntimeError):
    """Raised when credential material cannot be produced."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


class Credential(ABC):
    variant: CredentialVariant

    @property
    @abstractmethod
    def refreshable(self) -> bool:
        ...

    @abstractmethod
    def apply(self, headers: MutableMapping[str, str], params: MutableMapping[str, str]) -> None:
        """Attach auth material to an outgoing request, minting it first if needed."""

    @abstractmethod
    def refresh(self) -> None:
        """Discard the current material and acquire a new one (blocking)."""


class SecretCredential(Credential):
    """Static shared secret sent as a request header."""

    variant = CredentialVariant.SECRET

    def __init__(self, secret: str, header_name: str = "Abios-Secret") -> None:
        if not secret:
            raise ValueError("secret must not be empty")
        self._secret = secret
        self._header_name = header_name

    @property
    def refreshable(self) -> bool:
        return False

    def apply(self, headers: MutableMapping[str, str], params: MutableMapping[str, str]) -> None:
        headers[self._header_name] = self._secret

    def refresh(self) -> None:
        raise CredentialError("A static secret cannot be refreshed")

    def __repr__(self) -> str:
        return f"SecretCredential(header_name={self._header_name!r})"


class BearerTokenCredential(Credential):
    """Expiring access token minted from a client id and secret."""

    variant = CredentialVariant.BEARER_TOKEN

    def __init__(
        self,
        *,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_client: Optional[TokenClient] = None,
        access_token: Optional[str] = None,
        clock=time.monotonic,
    ) -> None:
        if not access_token and not (client_id and client_secret and token_client):
            raise ValueError("either an access token or client id, secret and token client are required")
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_client = token_client
        self._token = access_token
        self._expires_at: Optional[float] = None
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def refreshable(self) -> bool:
        return bool(self._client_id and self._client_secret and self._token_client)

    def apply(self, headers: MutableMapping[str, str], params: MutableMapping[str, str]) -> None:
        params["access_token"] = self.current_token()

    def current_token(self) -> str:
        with self._lock:
            if self._token and not self._expired():
                return self._token
            if not self.refreshable:
                if self._token:
                    return self._token
                raise CredentialError("No access token available")
            self._mint()
            assert self._token is not None
            return self._token

    def refresh(self) -> None:
        with self._lock:
            if not self.refreshable:
                raise CredentialError("Access token was supplied directly and cannot be refreshed")
            self._token = None
            self._expires_at = None
            self._mint()

    def _expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def _mint(self) -> None:
        assert self._token_client is not None
        try:
            token = self._token_client.mint_token(self._client_id or "", self._client_secret or "")
        except ApiRequestError as exc:
            # Network failures, 429 and 5xx may clear up; a rejected client id will not.
            retryable = exc.status is None or exc.status == 429 or exc.status >= 500
            raise CredentialError(f"Access token request failed: {exc}", retryable=retryable) from exc
        except ApiClientError as exc:
            raise CredentialError(f"Access token request failed: {exc}") from exc
        self._token = token.token
        if token.ttl_seconds > 0:
            self._expires_at = self._clock() + max(0.0, token.ttl_seconds - EXPIRY_MARGIN_SECONDS)
        else:
            self._expires_at = None
        LOGGER.info("Access token minted (ttl=%ss)", token.ttl_seconds)

    def __repr__(self) -> str:
        return f"BearerTokenCredential(client_id={self._client_id!r}, refreshable={self.refreshable})"


def build_credential(settings: ClientSettings, token_client: Optional[TokenClient] = None) -> Credential:
    """Select the credential variant once from settings."""

    if settings.client_secret:
        return SecretCredential(settings.client_secret, settings.secret_header)
    if settings.client_id and settings.client_id_secret:
        if token_client is None:
            token_client = TokenClient.from_settings(settings)
        return BearerTokenCredential(
            client_id=settings.client_id,
            client_secret=settings.client_id_secret,
            token_client=token_client,
            access_token=settings.access_token,
        )
    if settings.access_token:
        return BearerTokenCredential(access_token=settings.access_token)
    raise ValueError("No credentials configured: set client_secret, client_id + client_id_secret, or access_token")
