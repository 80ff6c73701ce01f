"""HTTP client for the push service control-plane (config and subscriptions)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode, urljoin
from uuid import UUID

import requests
from requests import Response

from pushclient.api.errors import (
    ApiClientError,
    ApiNotFoundError,
    ApiRequestError,
    ApiUnauthorizedError,
)
from pushclient.config import ClientSettings
from pushclient.models import Subscription

if TYPE_CHECKING:
    from pushclient.auth.credentials import Credential


class PushApiClient:
    def __init__(
        self,
        *,
        base_url: str,
        credential: "Credential",
        timeout_seconds: float,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credential = credential
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: ClientSettings, credential: "Credential") -> PushApiClient:
        assert settings.api_base_url is not None
        return cls(
            base_url=settings.api_base_url,
            credential=credential,
            timeout_seconds=settings.http_timeout_seconds,
        )

    def fetch_config(self) -> bytes:
        return self._request("GET", "/config").content

    def list_subscriptions(self) -> bytes:
        return self._request("GET", "/subscription").content

    def register_subscription(self, subscription: Subscription) -> tuple[UUID, bool]:
        """Register a subscription; returns ``(id, already_exists)``.

        A 422 answer means a subscription with the same name is already
        registered; its id is taken from the ``Location`` header.
        """

        response = self._request(
            "POST",
            "/subscription",
            json_body=subscription.to_wire(),
            allowed={422},
        )
        if response.status_code == 422:
            location = response.headers.get("Location")
            if not location:
                raise ApiRequestError("Subscription with name already exists, but failed to retrieve ID", 422)
            try:
                return UUID(location.rstrip("/").rsplit("/", 1)[-1]), True
            except ValueError as exc:
                raise ApiRequestError(f"Location header is not a subscription id: {location!r}", 422) from exc
        return self._parse_id(response), False

    def update_subscription(self, subscription: Subscription) -> tuple[UUID | None, bool]:
        """Replace a subscription; returns ``(id, conflict)``."""

        if subscription.id is None:
            raise ValueError("subscription.id is required for an update")
        response = self._request(
            "PUT",
            f"/subscription/{subscription.id}",
            json_body=subscription.to_wire(),
            allowed={422},
        )
        if response.status_code == 422:
            return None, True
        return self._parse_id(response), False

    def delete_subscription(self, id_or_name: str) -> None:
        self._request("DELETE", f"/subscription/{quote(str(id_or_name), safe='')}")

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        allowed: set[int] | None = None,
    ) -> Response:
        headers = {"Accept": "application/json"}
        params: dict[str, str] = {}
        self._credential.apply(headers, params)
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        url = self._build_url(path, params=params)
        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                data=json.dumps(json_body) if json_body is not None else None,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ApiRequestError(str(exc)) from exc
        if response.status_code != 200 and response.status_code not in (allowed or set()):
            self._raise_for_status(response)
        return response

    def _build_url(self, path: str, *, params: dict[str, str] | None = None) -> str:
        url = urljoin(f"{self._base_url}/", path.lstrip("/"))
        if params:
            return f"{url}?{urlencode(params)}"
        return url

    @staticmethod
    def _parse_id(response: Response) -> UUID:
        try:
            return UUID(str(response.json()["id"]))
        except (ValueError, KeyError, TypeError) as exc:
            raise ApiRequestError("Push service returned no subscription id.", response.status_code) from exc

    @staticmethod
    def _raise_for_status(response: Response) -> None:
        status = response.status_code
        if status in {401, 403}:
            raise ApiUnauthorizedError("Push service access denied.", status)
        if status == 404:
            raise ApiNotFoundError("Push service resource not found.", status)
        raise ApiRequestError(f"Unexpected status code: {status}. Response message: {response.text}", status)


__all__ = ["PushApiClient", "ApiClientError"]
