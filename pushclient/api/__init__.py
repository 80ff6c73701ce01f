"""HTTP collaborators of the push session: control-plane API and token minting."""

from pushclient.api.errors import ApiClientError, ApiNotFoundError, ApiRequestError, ApiUnauthorizedError
from pushclient.api.token_client import AccessToken, TokenClient
from pushclient.api.client import PushApiClient

__all__ = [
    "AccessToken",
    "ApiClientError",
    "ApiNotFoundError",
    "ApiRequestError",
    "ApiUnauthorizedError",
    "PushApiClient",
    "TokenClient",
]
