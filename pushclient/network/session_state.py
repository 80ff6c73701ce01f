"""Session tracking for the push subscription connection."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from pushclient.network.disconnect import DisconnectReason


class SessionState(enum.Enum):
    """Client-side connection lifecycle."""

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    AWAITING_HANDSHAKE = "AWAITING_HANDSHAKE"
    ACTIVE = "ACTIVE"
    RECONNECTING = "RECONNECTING"
    TERMINATED = "TERMINATED"


_ALLOWED: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.CONNECTING, SessionState.TERMINATED},
    SessionState.CONNECTING: {
        SessionState.CONNECTING,
        SessionState.AWAITING_HANDSHAKE,
        SessionState.TERMINATED,
    },
    SessionState.AWAITING_HANDSHAKE: {
        SessionState.ACTIVE,
        SessionState.RECONNECTING,
        SessionState.TERMINATED,
    },
    SessionState.ACTIVE: {SessionState.RECONNECTING, SessionState.TERMINATED},
    SessionState.RECONNECTING: {SessionState.CONNECTING, SessionState.TERMINATED},
    SessionState.TERMINATED: set(),
}


@dataclass
class SessionTracker:
    """In-memory session metadata; TERMINATED is absorbing."""

    subscription_identity: str
    reconnect_token: Optional[str] = None
    state: SessionState = SessionState.IDLE
    subscriber_id: Optional[str] = None
    last_failure: Optional[DisconnectReason] = None
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: SessionState) -> None:
        """Move the session into a new state, validating allowed transitions."""

        if next_state not in _ALLOWED[self.state]:
            raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def record_handshake(self, subscriber_id: str, token: Optional[str], *, retain_on_empty: bool) -> None:
        """Store the init frame's identity; an empty token clears the stored one unless ``retain_on_empty``."""

        self.subscriber_id = subscriber_id
        if token or not retain_on_empty:
            self.reconnect_token = token
        self.last_failure = None
