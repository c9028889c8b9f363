"""Helix REST collaborators."""

from .helix import HelixAPI  # noqa: F401
from .models import (  # noqa: F401
    Stream,
    Subscription,
    SubscriptionStatus,
    SubscriptionTransport,
    SubscriptionType,
    TransportMethod,
    User,
)

__all__ = [
    "HelixAPI",
    "Stream",
    "Subscription",
    "SubscriptionStatus",
    "SubscriptionTransport",
    "SubscriptionType",
    "TransportMethod",
    "User",
]
