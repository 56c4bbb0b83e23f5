"""Infrastructure layer - Adapters and implementations."""

from vakit_push.infrastructure.cache import TTLCache
from vakit_push.infrastructure.scheduler import APSchedulerAdapter
from vakit_push.infrastructure.subscription_store import (
    InMemorySubscriptionStore,
    JsonSubscriptionStore,
)
from vakit_push.infrastructure.webpush_sender import WebPushSender

__all__ = [
    "APSchedulerAdapter",
    "InMemorySubscriptionStore",
    "JsonSubscriptionStore",
    "TTLCache",
    "WebPushSender",
]
