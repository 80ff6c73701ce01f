"""Client-credentials token minting."""

from __future__ import annotations

from dataclasses import dataclass

import requests
from pydantic import ValidationError

from pushclient.api.errors import ApiRequestError, ApiUnauthorizedError
from pushclient.config import ClientSettings
from pushclient.models import AuthResponse


@dataclass(frozen=True)
class AccessToken:
    token: str
    ttl_seconds: int


class TokenClient:
    def __init__(self, *, token_url: str, timeout_seconds: float) -> None:
        self._token_url = token_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> TokenClient:
        return cls(token_url=settings.token_url, timeout_seconds=settings.http_timeout_seconds)

    def mint_token(self, client_id: str, client_secret: str) -> AccessToken:
        form = {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "client_credentials",
        }
        try:
            response = requests.post(
                f"{self._token_url}/oauth/access_token",
                data=form,
                headers={"Accept": "application/json"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ApiRequestError(str(exc)) from exc
        if response.status_code in {400, 401, 403}:
            raise ApiUnauthorizedError(
                f"Token request rejected with status {response.status_code}.",
                status=response.status_code,
            )
        if response.status_code != 200:
            raise ApiRequestError(
                f"Token request failed with status {response.status_code}.",
                status=response.status_code,
            )
        try:
            body = AuthResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ApiRequestError("Token endpoint returned an invalid body.", status=response.status_code) from exc
        return AccessToken(token=body.access_token, ttl_seconds=body.expires_in)


__all__ = ["AccessToken", "TokenClient"]
