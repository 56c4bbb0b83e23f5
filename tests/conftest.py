"""Shared fixtures and fakes."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from vakit_push.config import AppConfig
from vakit_push.domain.models import (
    CalculationProfile,
    DeliveryResult,
    DeliveryStatus,
    Location,
    NotificationPayload,
    PrayerName,
    Subscription,
    TimingSet,
    subscription_id_for,
)
from vakit_push.services.ports import PushSenderPort, TimingProviderPort

OSLO_TZ = ZoneInfo("Europe/Oslo")
SCENARIO_DATE = date(2024, 11, 5)

OSLO_TIMES = {
    PrayerName.FAJR: "05:40",
    PrayerName.SUNRISE: "07:30",
    PrayerName.DHUHR: "12:45",
    PrayerName.ASR: "14:50",
    PrayerName.MAGHRIB: "17:28",
    PrayerName.ISHA: "19:10",
}


def oslo(hour: int, minute: int, day: date = SCENARIO_DATE) -> datetime:
    """Aware datetime in Europe/Oslo."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=OSLO_TZ)


class StaticProvider(TimingProviderPort):
    """Returns the same times for every day, or raises the configured error."""

    def __init__(self, name: str, times: dict[PrayerName, str] | None = None, error=None):
        self.name = name
        self.times = times or OSLO_TIMES
        self.error = error
        self.calls: list[tuple[date, CalculationProfile]] = []

    def get_timings(self, location: Location, target_date: date, profile: CalculationProfile):
        self.calls.append((target_date, profile))
        if self.error is not None:
            raise self.error
        return TimingSet.from_mapping(
            self.times,
            target_date=target_date,
            timezone=location.timezone,
            provider=self.name,
        ).validate()


class FakeSender(PushSenderPort):
    """Records sends and returns queued results (DELIVERED by default)."""

    def __init__(self, *results: DeliveryResult | Exception):
        self.results = list(results)
        self.sent: list[tuple[str, NotificationPayload]] = []

    def send(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryResult:
        self.sent.append((subscription.id, payload))
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return DeliveryResult(DeliveryStatus.DELIVERED, 201)


def make_subscription(endpoint: str = "https://push.example.com/abc", **overrides) -> Subscription:
    """Oslo subscriber with valid credentials."""
    values = {
        "id": subscription_id_for(endpoint),
        "endpoint": endpoint,
        "keys": {"p256dh": "BNcR-key", "auth": "auth-secret"},
        "lat": 59.91,
        "lon": 10.75,
        "timezone": "Europe/Oslo",
        "country_code": "NO",
        "city": "Oslo",
    }
    values.update(overrides)
    return Subscription(**values)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    """Test configuration without scheduler or network secrets."""
    return AppConfig(
        store_path=tmp_path / "subscriptions.json",
        scheduler_enabled=False,
        vapid_public_key="public",
        vapid_private_key="private",
    )
