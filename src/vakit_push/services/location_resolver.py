"""Nearest regional reference location resolution."""

import logging
import math

from vakit_push.domain.errors import NoLocationsAvailable, NoValidCandidate, ProviderError
from vakit_push.domain.models import LocationRecord
from vakit_push.infrastructure.cache import TTLCache
from vakit_push.services.ports import LocationCatalogPort

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """İki nokta arası büyük daire mesafesi (km)."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class RegionalLocationResolver:
    """Koordinatları bölgesel kataloğun en yakın konumuna eşler."""

    def __init__(self, catalog: LocationCatalogPort, cache: TTLCache[list[LocationRecord]]) -> None:
        """
        Initialize resolver.

        Args:
            catalog: Bölgesel konum kataloğu
            cache: Yuvarlanmış koordinat kovası başına katalog önbelleği
        """
        self._catalog = catalog
        self._cache = cache

    @staticmethod
    def _bucket(lat: float, lon: float) -> tuple[float, float]:
        return (round(lat, 2), round(lon, 2))

    def _load_catalog(self, lat: float, lon: float) -> list[LocationRecord]:
        def load() -> list[LocationRecord]:
            try:
                records = self._catalog.list_locations()
            except ProviderError as e:
                raise NoLocationsAvailable(f"Konum kataloğu alınamadı: {e}") from e
            if not records:
                raise NoLocationsAvailable("Konum kataloğu boş")
            logger.info(f"Konum kataloğu yüklendi: {len(records)} konum")
            return records

        return self._cache.get_or_load(self._bucket(lat, lon), load)

    def nearest(self, lat: float, lon: float) -> tuple[LocationRecord, float]:
        """
        En yakın referans konumu ve mesafesini bul.

        Raises:
            NoLocationsAvailable: Katalog boş veya erişilemez
            NoValidCandidate: Hiçbir kaydın geçerli koordinatı yok
        """
        best: LocationRecord | None = None
        best_distance = math.inf

        for record in self._load_catalog(lat, lon):
            if not record.has_valid_coordinates:
                continue
            distance = haversine_km(lat, lon, record.lat, record.lon)
            if best is None or distance < best_distance:
                best = record
                best_distance = distance

        if best is None:
            raise NoValidCandidate("Katalogda geçerli koordinatlı konum yok")
        return best, best_distance

    def resolve(self, lat: float, lon: float) -> str:
        """Koordinatlar için en yakın konum ID'sini döndür."""
        record, distance = self.nearest(lat, lon)
        logger.debug(f"En yakın konum ({lat:.2f}, {lon:.2f}) -> {record.id} ({distance:.1f} km)")
        return record.id
