"""Tests for regional location resolution and the TTL cache."""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from vakit_push.domain.errors import NoLocationsAvailable, NoValidCandidate, ProviderError
from vakit_push.domain.models import LocationRecord
from vakit_push.infrastructure.cache import TTLCache
from vakit_push.services.location_resolver import RegionalLocationResolver, haversine_km
from vakit_push.services.ports import LocationCatalogPort

CATALOG = [
    LocationRecord(id="1", lat=59.9139, lon=10.7522, name="Oslo"),
    LocationRecord(id="2", lat=60.3913, lon=5.3221, name="Bergen"),
    LocationRecord(id="3", lat=63.4305, lon=10.3951, name="Trondheim"),
    LocationRecord(id="4", lat=69.6492, lon=18.9553, name="Tromsø"),
]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def catalog() -> MagicMock:
    """Catalog returning the Norwegian reference points."""
    mock = MagicMock(spec=LocationCatalogPort)
    mock.list_locations.return_value = list(CATALOG)
    return mock


@pytest.fixture
def resolver(catalog: MagicMock) -> RegionalLocationResolver:
    """Resolver with a week-long cache."""
    return RegionalLocationResolver(catalog, TTLCache(7 * 24 * 3600, name="locations"))


class TestHaversine:
    """Great-circle distance tests."""

    def test_same_point(self) -> None:
        """Distance to itself is zero."""
        assert haversine_km(59.91, 10.75, 59.91, 10.75) == 0

    def test_oslo_bergen(self) -> None:
        """Oslo-Bergen is roughly 305 km."""
        assert haversine_km(59.9139, 10.7522, 60.3913, 5.3221) == pytest.approx(305, abs=5)


class TestRegionalLocationResolver:
    """Nearest location tests."""

    def test_exact_catalog_point(self, resolver: RegionalLocationResolver) -> None:
        """A catalog point resolves to itself at distance zero."""
        record, distance = resolver.nearest(63.4305, 10.3951)
        assert record.id == "3"
        assert distance == 0

    def test_nearest(self, resolver: RegionalLocationResolver) -> None:
        """Drammen resolves to Oslo."""
        assert resolver.resolve(59.74, 10.20) == "1"

    def test_catalog_cached_per_bucket(
        self, resolver: RegionalLocationResolver, catalog: MagicMock
    ) -> None:
        """Nearby coordinates in the same bucket reuse the catalog."""
        resolver.resolve(59.911, 10.751)
        resolver.resolve(59.912, 10.752)
        assert catalog.list_locations.call_count == 1

        resolver.resolve(60.39, 5.32)
        assert catalog.list_locations.call_count == 2

    def test_empty_catalog(self, catalog: MagicMock, resolver: RegionalLocationResolver) -> None:
        """Empty catalog raises NoLocationsAvailable."""
        catalog.list_locations.return_value = []
        with pytest.raises(NoLocationsAvailable):
            resolver.resolve(59.91, 10.75)

    def test_unreachable_catalog(
        self, catalog: MagicMock, resolver: RegionalLocationResolver
    ) -> None:
        """Provider failure raises NoLocationsAvailable and is not cached."""
        catalog.list_locations.side_effect = ProviderError("bonnetid", "HTTP 503")
        with pytest.raises(NoLocationsAvailable):
            resolver.resolve(59.91, 10.75)

        catalog.list_locations.side_effect = None
        catalog.list_locations.return_value = list(CATALOG)
        assert resolver.resolve(59.91, 10.75) == "1"

    def test_no_valid_candidate(
        self, catalog: MagicMock, resolver: RegionalLocationResolver
    ) -> None:
        """Entries with non-finite coordinates are skipped."""
        catalog.list_locations.return_value = [
            LocationRecord(id="x", lat=float("nan"), lon=10.0),
            LocationRecord(id="y", lat=59.0, lon=float("inf")),
        ]
        with pytest.raises(NoValidCandidate):
            resolver.resolve(59.91, 10.75)

    def test_invalid_entries_ignored(
        self, catalog: MagicMock, resolver: RegionalLocationResolver
    ) -> None:
        """A broken entry next to a valid one does not matter."""
        catalog.list_locations.return_value = [
            LocationRecord(id="bad", lat=float("nan"), lon=float("nan")),
            LocationRecord(id="4", lat=69.6492, lon=18.9553),
        ]
        assert resolver.resolve(59.91, 10.75) == "4"


class TestTTLCache:
    """TTL cache tests."""

    def test_expiry(self) -> None:
        """Entries expire after the ttl."""
        clock = FakeClock()
        cache: TTLCache[str] = TTLCache(60, clock=clock)
        cache.set("k", "v")
        assert cache.get("k") == "v"

        clock.now += 61
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_get_or_load(self) -> None:
        """Loader runs once while the entry is fresh."""
        cache: TTLCache[int] = TTLCache(60)
        loader = MagicMock(return_value=42)
        assert cache.get_or_load("k", loader) == 42
        assert cache.get_or_load("k", loader) == 42
        assert loader.call_count == 1

    def test_loader_errors_not_cached(self) -> None:
        """A failing loader leaves no entry behind."""
        cache: TTLCache[int] = TTLCache(60)
        with pytest.raises(RuntimeError):
            cache.get_or_load("k", MagicMock(side_effect=RuntimeError("boom")))
        assert cache.get_or_load("k", lambda: 7) == 7

    def test_invalidate_and_clear(self) -> None:
        """Invalidate removes one key, clear removes all."""
        cache: TTLCache[int] = TTLCache(60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0

    def test_past_keys_pruned_on_write(self) -> None:
        """Day-keyed entries that are never read again do not accumulate."""
        clock = FakeClock()
        cache: TTLCache[str] = TTLCache(12 * 3600, clock=clock)

        start = date(2024, 1, 1)
        for offset in range(365):
            cache.get_or_load(start + timedelta(days=offset), lambda: "times")
            clock.now += 24 * 3600

        assert len(cache) == 1

    def test_fresh_entries_survive_pruning(self) -> None:
        """Writing a new key keeps entries that are still valid."""
        clock = FakeClock()
        cache: TTLCache[int] = TTLCache(60, clock=clock)
        cache.set("old", 1)
        clock.now += 30
        cache.set("new", 2)

        assert cache.get("old") == 1
        assert len(cache) == 2
