from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_serializer


class SubscriptionFilter(BaseModel):
    """A single filter; unset fields are left out of the wire format."""

    channel: Optional[str] = None
    game_id: Optional[int] = None
    series_id: Optional[int] = None
    match_id: Optional[int] = None

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler) -> dict[str, Any]:
        data = handler(self)
        return {key: value for key, value in data.items() if value not in (None, "", 0)}


class Subscription(BaseModel):
    """Subscription specification registered with the push service."""

    # Read-only; assigned by the server.
    id: Optional[UUID] = None
    name: Optional[str] = None
    description: Optional[str] = None
    filters: List[SubscriptionFilter] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True)
        data.setdefault("filters", [])
        return data


def default_subscription(name: Optional[str] = None) -> Subscription:
    """Subscription receiving every event on the match and series channels."""

    return Subscription(
        name=name or None,
        filters=[SubscriptionFilter(channel="match"), SubscriptionFilter(channel="series")],
    )
