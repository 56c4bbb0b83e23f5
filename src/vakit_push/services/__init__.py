"""Service layer - Business logic."""

from vakit_push.services.ports import (
    UNSET,
    LocationCatalogPort,
    PushSenderPort,
    SchedulerPort,
    SubscriptionStorePort,
    TimingProviderPort,
)
from vakit_push.services.normalizer import map_timings, normalize_field_key, to_hhmm
from vakit_push.services.location_resolver import RegionalLocationResolver, haversine_km
from vakit_push.services.timing_service import TimingService, TimezoneResolver, is_regional
from vakit_push.services.dispatch_service import (
    DispatchOutcome,
    DispatchReport,
    DispatchService,
    WindowState,
    classify,
    is_due,
)

__all__ = [
    "UNSET",
    "DispatchOutcome",
    "DispatchReport",
    "DispatchService",
    "LocationCatalogPort",
    "PushSenderPort",
    "RegionalLocationResolver",
    "SchedulerPort",
    "SubscriptionStorePort",
    "TimezoneResolver",
    "TimingProviderPort",
    "TimingService",
    "WindowState",
    "classify",
    "haversine_km",
    "is_due",
    "is_regional",
    "map_timings",
    "normalize_field_key",
    "to_hhmm",
]
