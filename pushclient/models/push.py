"""Inbound frame schemas: the init handshake and push events."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator

from pushclient.models.subscription import Subscription

NIL_TOKEN = "00000000-0000-0000-0000-000000000000"


class PushEvent(BaseModel):
    """Envelope of an event published on a subscribed channel."""

    channel: StrictStr
    uuid: UUID
    created_timestamp: StrictInt = 0
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("payload", mode="before")
    @classmethod
    def _null_payload(cls, value: Any) -> Any:
        # null is sent for events without a body
        return {} if value is None else value

    def latency_ms(self, received_at_ms: int) -> Optional[int]:
        """Delivery latency, or None when the server sent no creation time."""

        if self.created_timestamp <= 0:
            return None
        return received_at_ms - self.created_timestamp


class HandshakeMessage(BaseModel):
    """The mandatory ``init`` frame on the ``system`` channel."""

    model_config = ConfigDict(extra="ignore")

    channel: Literal["system"]
    cmd: Literal["init"]
    uuid: Optional[UUID] = None
    subscriber_id: UUID
    reconnect_token: Optional[StrictStr] = None
    subscription: Subscription
    reconnected: StrictBool = False

    def token(self) -> Optional[str]:
        """Reconnect token, with the nil UUID and empty string read as absent."""

        if not self.reconnect_token or self.reconnect_token == NIL_TOKEN:
            return None
        return self.reconnect_token
