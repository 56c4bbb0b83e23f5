"""Tests for API routes."""

import asyncio
import threading
from dataclasses import replace
from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from vakit_push.api.app import create_app
from vakit_push.api.dependencies import AppState
from vakit_push.api.routes import subscribe
from vakit_push.api.schemas import SubscribeRequest
from vakit_push.domain.errors import ProviderError
from vakit_push.domain.models import (
    DeliveryResult,
    DeliveryStatus,
    TimingSet,
    subscription_id_for,
    to_epoch_ms,
)
from vakit_push.infrastructure.subscription_store import InMemorySubscriptionStore
from vakit_push.services.dispatch_service import DispatchService
from vakit_push.services.timing_service import TimezoneResolver, TimingService

from conftest import OSLO_TIMES, FakeSender, StaticProvider, make_subscription, oslo

ENDPOINT = "https://push.example.com/abc"
MAGHRIB_MS = to_epoch_ms(oslo(17, 28))


def _subscribe_body(**overrides) -> dict:
    body = {
        "subscription": {
            "endpoint": ENDPOINT,
            "keys": {"p256dh": "BNcR-key", "auth": "auth-secret"},
        },
        "lat": 59.91,
        "lon": 10.75,
        "timezone": "Europe/Oslo",
        "countryCode": "no",
        "city": "Oslo",
    }
    body.update(overrides)
    return body


@pytest.fixture
def regional() -> StaticProvider:
    """Regional provider stub."""
    return StaticProvider("bonnetid")


@pytest.fixture
def astronomical() -> StaticProvider:
    """Generic provider stub."""
    return StaticProvider("aladhan")


@pytest.fixture
def sender() -> FakeSender:
    """Sender that always delivers."""
    return FakeSender()


@pytest.fixture
def app_state(config, regional, astronomical, sender) -> AppState:
    """Application state wired with in-memory fakes."""
    resolver = MagicMock(spec=TimezoneResolver)
    resolver.timezone_at.return_value = "Europe/Oslo"
    timing = TimingService(astronomical=astronomical, regional=regional, timezone_resolver=resolver)
    store = InMemorySubscriptionStore()
    return AppState(
        config=config,
        store=store,
        timing_service=timing,
        dispatch_service=DispatchService(store, timing, sender, config),
        sender=sender,
    )


@pytest.fixture
def client(app_state):
    """Test client around the application."""
    with TestClient(create_app(state=app_state)) as test_client:
        yield test_client


class TestHealthEndpoint:
    """Health check endpoint tests."""

    def test_health_check(self, client) -> None:
        """Test health check returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestSubscribe:
    """Subscription endpoint tests."""

    def test_subscribe_creates_record(self, client, app_state) -> None:
        """A new subscription is stored under the endpoint's id."""
        response = client.post("/api/subscribe", json=_subscribe_body())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["id"] == subscription_id_for(ENDPOINT)
        assert data["data"]["next_prayer_name"] is not None

        stored = asyncio.run(app_state.store.get(subscription_id_for(ENDPOINT)))
        assert stored.country_code == "NO"
        assert stored.keys == {"p256dh": "BNcR-key", "auth": "auth-secret"}

    def test_resubscribe_keeps_dispatch_state(self, client, app_state) -> None:
        """Re-subscribing from the same place keeps the send history."""
        existing = make_subscription(
            ENDPOINT, next_prayer_name="Maghrib", next_prayer_at=1_000, last_sent_at=900
        )
        asyncio.run(app_state.store.upsert(existing))

        response = client.post("/api/subscribe", json=_subscribe_body())

        assert response.status_code == 200
        stored = asyncio.run(app_state.store.get(existing.id))
        assert stored.last_sent_at == 900
        assert stored.next_prayer_at == 1_000

    def test_moving_resets_pending_prayer(self, client, app_state) -> None:
        """A new location recomputes the pending prayer."""
        existing = make_subscription(ENDPOINT, next_prayer_name="Maghrib", next_prayer_at=1_000)
        asyncio.run(app_state.store.upsert(existing))

        client.post("/api/subscribe", json=_subscribe_body(lat=60.39, lon=5.32, city="Bergen"))

        stored = asyncio.run(app_state.store.get(existing.id))
        assert stored.city == "Bergen"
        assert stored.next_prayer_at != 1_000

    def test_subscribe_without_keys(self, client) -> None:
        """Missing push keys are rejected."""
        body = _subscribe_body()
        del body["subscription"]["keys"]
        assert client.post("/api/subscribe", json=body).status_code == 422

    def test_subscribe_stores_even_when_timings_fail(self, client, app_state, regional, astronomical) -> None:
        """Resolution failure does not block registration."""
        regional.error = ProviderError("bonnetid", "down")
        astronomical.error = ProviderError("aladhan", "down")

        response = client.post("/api/subscribe", json=_subscribe_body())

        assert response.status_code == 200
        assert response.json()["data"]["next_prayer_name"] is None
        assert asyncio.run(app_state.store.list_ids()) == [subscription_id_for(ENDPOINT)]


class TestUnsubscribe:
    """Unsubscribe endpoint tests."""

    def test_by_endpoint(self, client, app_state) -> None:
        """Endpoint is mapped to its id and deleted."""
        asyncio.run(app_state.store.upsert(make_subscription(ENDPOINT)))

        response = client.post("/api/unsubscribe", json={"endpoint": ENDPOINT})

        assert response.status_code == 200
        assert response.json()["data"]["deleted"] is True
        assert asyncio.run(app_state.store.list_ids()) == []

    def test_unknown(self, client) -> None:
        """Deleting an unknown id is not an error."""
        response = client.post("/api/unsubscribe", json={"id": "sub_missing"})
        assert response.status_code == 200
        assert response.json()["data"]["deleted"] is False

    def test_requires_identifier(self, client) -> None:
        """Empty body is rejected."""
        assert client.post("/api/unsubscribe", json={}).status_code == 422


class TestSubscriptions:
    """Debug listing tests."""

    def test_list_hides_keys(self, client, app_state) -> None:
        """Credentials never leave the service."""
        asyncio.run(app_state.store.upsert(make_subscription(ENDPOINT)))

        response = client.get("/api/subscriptions")

        assert response.status_code == 200
        (item,) = response.json()
        assert item["has_keys"] is True
        assert "keys" not in item
        assert "endpoint" not in item

    def test_get_missing(self, client) -> None:
        """Unknown id is a 404."""
        assert client.get("/api/subscriptions/sub_missing").status_code == 404


class TestTimings:
    """Timings endpoint tests."""

    def test_regional_timings(self, client) -> None:
        """Oslo uses the regional provider."""
        response = client.get(
            "/api/timings",
            params={"lat": 59.91, "lon": 10.75, "tz": "Europe/Oslo", "when": "2024-11-05"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "bonnetid"
        assert data["date"] == "2024-11-05"
        maghrib = next(p for p in data["prayers"] if p["name"] == "Maghrib")
        assert maghrib["time"] == "17:28"
        sunrise = next(p for p in data["prayers"] if p["name"] == "Sunrise")
        assert sunrise["notifiable"] is False

    def test_bad_date(self, client) -> None:
        """Unparseable date is a 400."""
        response = client.get("/api/timings", params={"lat": 59.91, "lon": 10.75, "when": "someday"})
        assert response.status_code == 400

    def test_all_providers_down(self, client, regional, astronomical) -> None:
        """No provider means 503."""
        regional.error = ProviderError("bonnetid", "down")
        astronomical.error = ProviderError("aladhan", "down")

        response = client.get("/api/timings", params={"lat": 59.91, "lon": 10.75, "tz": "Europe/Oslo"})
        assert response.status_code == 503

    def test_invalid_coordinates(self, client) -> None:
        """Out of range latitude is a 422."""
        assert client.get("/api/timings", params={"lat": 95, "lon": 10}).status_code == 422


class TestCalendar:
    """Monthly calendar endpoint tests."""

    def test_month_from_regional(self, client, regional) -> None:
        """Month table comes from the first provider that supports it."""
        regional.get_month = MagicMock(
            return_value=[
                TimingSet.from_mapping(
                    OSLO_TIMES, target_date=date(2024, 11, day), timezone="Europe/Oslo", provider="bonnetid"
                )
                for day in range(1, 31)
            ]
        )

        response = client.get(
            "/api/calendar",
            params={"lat": 59.91, "lon": 10.75, "tz": "Europe/Oslo", "year": 2024, "month": 11},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["days"]) == 30
        assert data["days"][0]["date"] == "2024-11-01"
        assert data["days"][0]["provider"] == "bonnetid"

    def test_no_month_support(self, client) -> None:
        """Providers without month tables give 503."""
        response = client.get(
            "/api/calendar", params={"lat": 59.91, "lon": 10.75, "year": 2024, "month": 11}
        )
        assert response.status_code == 503

    def test_invalid_month(self, client) -> None:
        """Month must be 1-12."""
        response = client.get(
            "/api/calendar", params={"lat": 59.91, "lon": 10.75, "year": 2024, "month": 13}
        )
        assert response.status_code == 422


class TestVapidPublicKey:
    """VAPID public key endpoint tests."""

    def test_returns_key(self, client) -> None:
        """Browser gets the key under publicKey."""
        response = client.get("/api/vapid-public-key")
        assert response.status_code == 200
        assert response.json() == {"publicKey": "public"}

    def test_missing_key(self, app_state) -> None:
        """Unset key is a 503."""
        state = replace(app_state, config=replace(app_state.config, vapid_public_key=""))
        with TestClient(create_app(state=state)) as test_client:
            assert test_client.get("/api/vapid-public-key").status_code == 503


class TestDispatchAndPush:
    """Manual dispatch and test push tests."""

    def test_run_dispatch(self, client, app_state) -> None:
        """Manual run returns the report."""
        asyncio.run(app_state.store.upsert(make_subscription(ENDPOINT)))

        response = client.post("/api/dispatch/run")

        assert response.status_code == 200
        data = response.json()
        assert data["checked"] == 1
        assert data["scheduled"] == 1

    def test_push_test_missing(self, client) -> None:
        """Unknown subscription is a 404."""
        assert client.post("/api/push/test", json={"id": "sub_missing"}).status_code == 404

    def test_push_test_delivered(self, client, app_state, sender) -> None:
        """Test push goes through the sender."""
        sub = make_subscription(ENDPOINT)
        asyncio.run(app_state.store.upsert(sub))

        response = client.post("/api/push/test", json={"id": sub.id, "title": "Hei"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "delivered"
        (_, payload), = sender.sent
        assert payload.title == "Hei"

    def test_push_test_gone(self, client, app_state, sender) -> None:
        """Gone endpoint is reported and removed."""
        sender.results.append(DeliveryResult(DeliveryStatus.GONE, 410))
        sub = make_subscription(ENDPOINT)
        asyncio.run(app_state.store.upsert(sub))

        response = client.post("/api/push/test", json={"id": sub.id})

        assert response.json()["success"] is False
        assert asyncio.run(app_state.store.get(sub.id)) is None


class TestStatus:
    """System status tests."""

    def test_status(self, client, app_state) -> None:
        """Status reports wiring and counts."""
        asyncio.run(app_state.store.upsert(make_subscription(ENDPOINT)))

        data = client.get("/api/status").json()

        assert data["scheduler_running"] is False
        assert data["regional_provider"] is True
        assert data["push_configured"] is True
        assert data["subscription_count"] == 1


class _BlockingTiming:
    """Timing facade whose next-prayer lookup waits until released."""

    def __init__(self, timing: TimingService) -> None:
        self._timing = timing
        self.entered = threading.Event()
        self.release = threading.Event()

    def location_for(self, subscription):
        return self._timing.location_for(subscription)

    def next_prayer_for(self, location, now, school=0):
        self.entered.set()
        self.release.wait(timeout=5)
        return self._timing.next_prayer_for(location, oslo(17, 27), school)


class TestSubscribeDuringDispatch:
    """Re-subscribing while a tick runs must not undo the tick's writes."""

    def test_tick_between_read_and_write_sends_once(self, app_state, sender) -> None:
        """A prayer sent mid-request is not restored as pending."""
        existing = make_subscription(ENDPOINT, next_prayer_name="Maghrib", next_prayer_at=MAGHRIB_MS)
        blocking = _BlockingTiming(app_state.timing_service)
        route_state = replace(app_state, timing_service=blocking)
        request = SubscribeRequest.model_validate(_subscribe_body(lat=60.0))

        async def scenario():
            await app_state.store.upsert(existing)
            pending = asyncio.create_task(subscribe(request, route_state))
            await asyncio.to_thread(blocking.entered.wait, 5)
            try:
                await app_state.dispatch_service.run_tick(oslo(17, 27))
            finally:
                blocking.release.set()
            await pending
            await app_state.dispatch_service.run_tick(oslo(17, 28))
            return await app_state.store.get(existing.id)

        stored = asyncio.run(scenario())

        assert [payload.title for _, payload in sender.sent] == ["Tid for Maghrib"]
        assert stored.last_sent_at == MAGHRIB_MS
        assert stored.next_prayer_name == "Isha"
        assert stored.lat == 60.0
