"""Decoding and validation of inbound frames."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from pydantic import ValidationError

from pushclient.models import HandshakeMessage, PushEvent

LOGGER = logging.getLogger(__name__)


class HandshakeError(RuntimeError):
    """Raised when the first frame after the upgrade is not a valid init message."""


def _load_json(raw: str | bytes) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def decode_handshake(raw: str | bytes) -> HandshakeMessage:
    try:
        data = _load_json(raw)
        if not isinstance(data, dict):
            raise HandshakeError(f"init frame must be a JSON object, got {type(data).__name__}")
        return HandshakeMessage.model_validate(data)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise HandshakeError(f"invalid init frame: {exc}") from exc


class MessagePipeline:
    """Turns raw frames into push events; malformed frames are logged and dropped."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self.decoded = 0
        self.dropped = 0
        self.last_latency_ms: Optional[int] = None

    def decode(self, raw: str | bytes) -> Optional[PushEvent]:
        received_at_ms = int(self._clock() * 1000)
        try:
            data = _load_json(raw)
            if not isinstance(data, dict):
                raise ValueError(f"push event must be a JSON object, got {type(data).__name__}")
            event = PushEvent.model_validate(data)
        except (UnicodeDecodeError, ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            self.dropped += 1
            LOGGER.warning("Dropping malformed push frame: %s raw=%r", exc, raw)
            return None
        self.decoded += 1
        latency = event.latency_ms(received_at_ms)
        if latency is not None:
            self.last_latency_ms = latency
            LOGGER.debug("Push event channel=%s uuid=%s latency=%sms", event.channel, event.uuid, latency)
        return event
