"""Domain layer - Business entities and value objects."""

from vakit_push.domain.errors import (
    InvalidTimings,
    MissingDay,
    NoLocationsAvailable,
    NoValidCandidate,
    ProviderError,
    PushNotConfigured,
    ResolutionError,
    StoreUnavailable,
    SubscriptionNotFound,
    TimingUnavailable,
    VakitPushError,
)
from vakit_push.domain.models import (
    DEFAULT_LOCATION,
    DEFAULT_PROFILE,
    NORWAY_PROFILE,
    NOTIFIABLE_PRAYERS,
    CalculationProfile,
    DeliveryResult,
    DeliveryStatus,
    Location,
    LocationRecord,
    NextPrayer,
    NotificationPayload,
    PrayerName,
    PrayerOffsets,
    Subscription,
    TimingSet,
    school_for_madhhab,
    subscription_id_for,
)

__all__ = [
    "DEFAULT_LOCATION",
    "DEFAULT_PROFILE",
    "NORWAY_PROFILE",
    "NOTIFIABLE_PRAYERS",
    "CalculationProfile",
    "DeliveryResult",
    "DeliveryStatus",
    "InvalidTimings",
    "Location",
    "LocationRecord",
    "MissingDay",
    "NextPrayer",
    "NoLocationsAvailable",
    "NoValidCandidate",
    "NotificationPayload",
    "PrayerName",
    "PrayerOffsets",
    "ProviderError",
    "PushNotConfigured",
    "ResolutionError",
    "StoreUnavailable",
    "Subscription",
    "SubscriptionNotFound",
    "TimingSet",
    "TimingUnavailable",
    "VakitPushError",
    "school_for_madhhab",
    "subscription_id_for",
]
