"""Command-line entrypoint for the push subscription client."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from pushclient.config import ClientSettings
from pushclient.runtime import run_forever

# argparse dest -> ClientSettings field
_OVERRIDES = {
    "addr": "ws_url",
    "client_secret": "client_secret",
    "client_id": "client_id",
    "client_id_secret": "client_id_secret",
    "access_token": "access_token",
    "access_token_url": "token_url",
    "reconnect_token": "reconnect_token",
    "subscription_id": "subscription_id",
    "subscription_name": "subscription_name",
    "log_level": "log_level",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Subscribe to the push service and log received events.")
    parser.add_argument("--addr", help="Push service WebSocket address")
    parser.add_argument("--client-secret", help="Shared secret sent in the secret header")
    parser.add_argument("--client-id", help="Client id used for creating access tokens")
    parser.add_argument("--client-id-secret", help="Client secret used for creating access tokens")
    parser.add_argument("--access-token", help="Use the given access token instead of client id + secret")
    parser.add_argument("--access-token-url", help="Base URL for access token creation")
    parser.add_argument("--reconnect-token", help="Reconnect to a previous subscriber state")
    identity = parser.add_mutually_exclusive_group()
    identity.add_argument("--subscription-id", help="Use an existing subscription instead of registering one")
    identity.add_argument("--subscription-name", help="Name to register the subscription under")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Minimum log level",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ClientSettings:
    overrides: Dict[str, Any] = {}
    for dest, field_name in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[field_name] = value
    return ClientSettings(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run_forever(settings))
    except ValueError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
