"""Prayer time resolution service."""

import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder

from vakit_push.domain.errors import TimingUnavailable
from vakit_push.domain.models import (
    DEFAULT_LOCATION,
    DEFAULT_PROFILE,
    NORWAY_PROFILE,
    NOTIFIABLE_PRAYERS,
    CalculationProfile,
    Location,
    NextPrayer,
    PrayerName,
    Subscription,
    TimingSet,
)
from vakit_push.services.ports import TimingProviderPort

logger = logging.getLogger(__name__)

REGIONAL_COUNTRY_CODE = "NO"

# Norveç sınır kutusu (kaba ama güvenli)
REGIONAL_BOUNDS = (57.9, 71.2, 4.5, 31.5)


def is_regional(lat: float, lon: float, country_code: str | None = None) -> bool:
    """
    Konum bölgesel sağlayıcının kapsamında mı?

    Ülke kodu verilmişse sınır kutusu yerine o kullanılır.
    """
    if country_code:
        return country_code.strip().upper() == REGIONAL_COUNTRY_CODE
    min_lat, max_lat, min_lon, max_lon = REGIONAL_BOUNDS
    return min_lat <= lat <= max_lat and min_lon <= lon <= max_lon


def is_valid_timezone(name: str | None) -> bool:
    """IANA timezone adı geçerli mi?"""
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


class TimezoneResolver:
    """Koordinatlardan timezone adı bul (TimezoneFinder tembel yüklenir)."""

    def __init__(self) -> None:
        self._finder: TimezoneFinder | None = None
        self._lock = threading.Lock()

    def timezone_at(self, lat: float, lon: float) -> str:
        """Koordinat için timezone, bulunamazsa UTC."""
        with self._lock:
            if self._finder is None:
                self._finder = TimezoneFinder()
            return self._finder.timezone_at(lat=lat, lng=lon) or "UTC"


class TimingService:
    """Bölgesel ve astronomik sağlayıcılar arasında vakit çözümleme servisi."""

    def __init__(
        self,
        *,
        astronomical: TimingProviderPort,
        regional: TimingProviderPort | None = None,
        local: TimingProviderPort | None = None,
        regional_profile: CalculationProfile = NORWAY_PROFILE,
        default_profile: CalculationProfile = DEFAULT_PROFILE,
        default_location: Location = DEFAULT_LOCATION,
        timezone_resolver: TimezoneResolver | None = None,
    ) -> None:
        """
        Initialize timing service.

        Args:
            astronomical: Genel astronomik sağlayıcı
            regional: Bölgesel hassas sağlayıcı (yapılandırılmamışsa None)
            local: Ağ gerektirmeyen son çare sağlayıcı
            regional_profile: Bölge için ayarlanmış hesaplama profili
            default_profile: Diğer konumlar için profil
            default_location: Konumsuz aboneler için varsayılan konum
            timezone_resolver: Koordinattan timezone bulucu
        """
        self._astronomical = astronomical
        self._regional = regional
        self._local = local
        self._regional_profile = regional_profile
        self._default_profile = default_profile
        self._default_location = default_location
        self._tz_resolver = timezone_resolver or TimezoneResolver()

    @property
    def default_location(self) -> Location:
        """Varsayılan konum."""
        return self._default_location

    @property
    def has_regional_provider(self) -> bool:
        """Bölgesel sağlayıcı yapılandırılmış mı?"""
        return self._regional is not None

    def timezone_for(self, lat: float, lon: float, tz: str | None = None) -> str:
        """Geçerli timezone adı döndür, yoksa koordinattan bul."""
        if is_valid_timezone(tz):
            return tz  # type: ignore[return-value]
        return self._tz_resolver.timezone_at(lat, lon)

    def profile_for(self, location: Location, school: int = 0) -> CalculationProfile:
        """Konum için hesaplama profilini seç."""
        if is_regional(location.latitude, location.longitude, location.country_code):
            return self._regional_profile
        return replace(self._default_profile, school=school)

    def _providers_for(
        self, location: Location, school: int
    ) -> list[tuple[TimingProviderPort, CalculationProfile]]:
        """Konum için denenecek sağlayıcı zinciri (strateji seçimi tek yerde)."""
        profile = self.profile_for(location, school)
        chain: list[tuple[TimingProviderPort, CalculationProfile]] = []
        if self._regional is not None and is_regional(
            location.latitude, location.longitude, location.country_code
        ):
            chain.append((self._regional, profile))
        chain.append((self._astronomical, profile))
        if self._local is not None:
            chain.append((self._local, profile))
        return chain

    def location_for(self, subscription: Subscription) -> Location:
        """Abonelik kaydından konum oluştur (eksik alanlar için varsayılanlar)."""
        if not subscription.has_coordinates:
            return self._default_location

        lat = float(subscription.lat)  # type: ignore[arg-type]
        lon = float(subscription.lon)  # type: ignore[arg-type]
        tz_name = subscription.timezone
        if not is_valid_timezone(tz_name):
            if tz_name:
                logger.warning(f"Geçersiz timezone '{tz_name}' ({subscription.id}), koordinattan bulunuyor")
            tz_name = self._tz_resolver.timezone_at(lat, lon)

        return Location(
            latitude=lat,
            longitude=lon,
            timezone=tz_name,  # type: ignore[arg-type]
            country_code=(subscription.country_code or "").upper(),
            city=subscription.city or "",
        )

    def timings_for(self, location: Location, target_date: date, school: int = 0) -> TimingSet:
        """
        Konum ve gün için vakitleri sağlayıcı zincirinden çöz.

        Bir sağlayıcı başarısız olursa sıradakine geçilir.

        Raises:
            TimingUnavailable: Hiçbir sağlayıcı geçerli vakit döndürmezse
        """
        errors = []
        for provider, profile in self._providers_for(location, school):
            try:
                return provider.get_timings(location, target_date, profile)
            except Exception as e:
                logger.warning(
                    f"{provider.name} vakitleri alınamadı ({target_date}, "
                    f"{location.latitude:.2f},{location.longitude:.2f}): {e}"
                )
                errors.append(f"{provider.name}: {e}")
        raise TimingUnavailable(f"{target_date} için vakit yok: {'; '.join(errors)}")

    def get_timings(
        self,
        lat: float,
        lon: float,
        tz: str | None,
        country_code: str | None,
        target_date: date,
        *,
        school: int = 0,
    ) -> TimingSet:
        """Koordinat, timezone ve gün için vakitleri döndür."""
        location = Location(
            latitude=lat,
            longitude=lon,
            timezone=self.timezone_for(lat, lon, tz),
            country_code=(country_code or "").upper(),
        )
        return self.timings_for(location, target_date, school)

    def get_month(
        self, location: Location, year: int, month: int, school: int = 0
    ) -> list[TimingSet]:
        """Bir ayın vakitlerini döndür."""
        errors = []
        for provider, profile in self._providers_for(location, school):
            try:
                return provider.get_month(location, year, month, profile)
            except Exception as e:
                logger.warning(f"{provider.name} aylık tablo alınamadı ({year}-{month:02d}): {e}")
                errors.append(f"{provider.name}: {e}")
        raise TimingUnavailable(f"{year}-{month:02d} için vakit yok: {'; '.join(errors)}")

    def next_prayer_for(
        self, location: Location, now: datetime, school: int = 0
    ) -> NextPrayer:
        """
        Şu andan kesin sonraki ilk bildirim vaktini bul.

        Bugünün vakitleri sırayla denenir, kalmadıysa yarının Fajr vakti
        döner. Gün sınırı abonenin timezone'una göre belirlenir.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local_today = now.astimezone(location.tz).date()

        today = self.timings_for(location, local_today, school)
        for prayer in NOTIFIABLE_PRAYERS:
            at = today.instant(prayer)
            if at > now:
                return NextPrayer(name=prayer, at=at)

        tomorrow = self.timings_for(location, local_today + timedelta(days=1), school)
        return NextPrayer(name=PrayerName.FAJR, at=tomorrow.instant(PrayerName.FAJR))

    def next_prayer(
        self,
        lat: float,
        lon: float,
        tz: str | None,
        country_code: str | None,
        now: datetime,
        *,
        school: int = 0,
    ) -> NextPrayer:
        """Koordinat ve timezone için sonraki vakti bul."""
        location = Location(
            latitude=lat,
            longitude=lon,
            timezone=self.timezone_for(lat, lon, tz),
            country_code=(country_code or "").upper(),
        )
        return self.next_prayer_for(location, now, school)

    def resolve_date(self, when: str, tz: str, now: datetime | None = None) -> date:
        """
        "today", "tomorrow" veya YYYY-MM-DD ifadesini abonenin gününe çevir.

        Raises:
            ValueError: Tanınmayan ifade
        """
        value = (when or "today").strip().lower()
        local_now = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz))
        if value == "today":
            return local_now.date()
        if value == "tomorrow":
            return local_now.date() + timedelta(days=1)
        return date.fromisoformat(value)
