"""Push client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal
from urllib.parse import urlsplit, urlunsplit

import yaml
from pydantic import AnyUrl, Field, model_validator
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/pushclient/client.yaml"),
    Path("/etc/pushclient/client.yml"),
    Path("./config/client.yaml"),
    Path("./config/client.yml"),
)


def http_base_from_ws(ws_url: str) -> str:
    """Map a push service socket URL onto its HTTP control-plane base."""

    parts = urlsplit(ws_url)
    scheme = "https" if parts.scheme == "wss" else "http"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


class ClientSettings(BaseSettings):
    """Validated settings for the push subscription client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="PUSH_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoints
    ws_url: AnyUrl = Field(
        default="wss://ws.abiosgaming.com/v0",
        description="Push service WebSocket endpoint.",
    )
    api_base_url: str | None = Field(
        default=None,
        description="Control-plane HTTP base URL; derived from ws_url when unset.",
    )
    token_url: str = Field(
        default="https://api.abiosgaming.com/v2",
        description="Base URL of the access token endpoint.",
    )

    # Credentials
    client_secret: str | None = Field(
        default=None,
        description="Static shared secret sent in the secret header.",
        repr=False,
    )
    secret_header: str = Field(
        default="Abios-Secret",
        description="Header carrying the shared secret.",
    )
    client_id: str | None = Field(
        default=None,
        description="Client id used to mint expiring access tokens.",
    )
    client_id_secret: str | None = Field(
        default=None,
        description="Client secret paired with client_id for token minting.",
        repr=False,
    )
    access_token: str | None = Field(
        default=None,
        description="Pre-minted access token used instead of client id + secret.",
        repr=False,
    )

    # Subscription identity
    subscription_id: str | None = Field(
        default=None,
        description="Existing subscription id; when set, no subscription is registered or deleted.",
    )
    subscription_name: str | None = Field(
        default=None,
        description="Optional name used when registering a new subscription.",
    )
    reconnect_token: str | None = Field(
        default=None,
        description="Reconnect token restoring a previous subscriber state.",
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )

    # Timeouts & reliability
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the WebSocket upgrade.",
    )
    handshake_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the init frame after the upgrade.",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for control-plane and token HTTP requests.",
    )
    keepalive_interval_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Period between liveness pings; 0 disables the keepalive loop.",
    )
    keepalive_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Delivery deadline for each liveness ping.",
    )
    rate_limit_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Delay before reconnecting after a rate-limit rejection.",
    )
    reconnect_delay_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Delay before retrying a failed connection setup.",
    )
    retain_reconnect_token_on_empty: bool = Field(
        default=False,
        description="Keep the previous reconnect token when the init frame carries an empty one.",
    )
    stop_keepalive_on_terminate: bool = Field(
        default=True,
        description="Cancel the keepalive loop once the session terminates.",
    )
    delete_subscription_on_exit: bool = Field(
        default=True,
        description="Delete subscriptions created by this process on shutdown.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the client process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @model_validator(mode="after")
    def _derive_api_base_url(self) -> "ClientSettings":
        if not self.api_base_url:
            self.api_base_url = http_base_from_ws(str(self.ws_url))
        return self

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        for path in ClientSettings._resolve_candidate_paths():
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("PUSH_CLIENT_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read client config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid client config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Client config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
