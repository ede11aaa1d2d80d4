"""Remote collection clients: the managed backend behind the stores."""

from designali_hub.infrastructure.remote.base import (
    CallbackSubscription,
    ChangeCallback,
    RemoteCollectionClient,
    SubscriptionHandle,
)
from designali_hub.infrastructure.remote.memory_client import InMemoryCollectionClient
from designali_hub.infrastructure.remote.realtime_feed import RealtimeFeed
from designali_hub.infrastructure.remote.rest_client import RestCollectionClient, raise_for_status

__all__ = [
    "CallbackSubscription",
    "ChangeCallback",
    "InMemoryCollectionClient",
    "RealtimeFeed",
    "RemoteCollectionClient",
    "RestCollectionClient",
    "SubscriptionHandle",
    "raise_for_status",
]
