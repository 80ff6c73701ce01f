"""Push client configuration."""

from pushclient.config.settings import ClientSettings, get_settings, http_base_from_ws

__all__ = ["ClientSettings", "get_settings", "http_base_from_ws"]
