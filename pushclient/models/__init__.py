from .auth import AuthResponse
from .push import NIL_TOKEN, HandshakeMessage, PushEvent
from .subscription import Subscription, SubscriptionFilter, default_subscription

__all__ = [
    "AuthResponse",
    "HandshakeMessage",
    "NIL_TOKEN",
    "PushEvent",
    "Subscription",
    "SubscriptionFilter",
    "default_subscription",
]
