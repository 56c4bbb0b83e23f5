"""Offline prayer time calculation with pyIslam."""

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from pyIslam.praytimes import Prayer, PrayerConf

from vakit_push.domain.errors import ProviderError
from vakit_push.domain.models import CalculationProfile, Location, PrayerName

logger = logging.getLogger(__name__)

PROVIDER_NAME = "local"

# pyIslam sabit açı referansları: (fajr, isha) derece
_REFERENCE_ANGLES = {
    1: (19.5, 17.5),  # Mısır Genel Araştırma Kurumu
    2: (18.0, 18.0),  # Karaçi
    3: (15.0, 15.0),  # ISNA
    4: (18.0, 17.0),  # Müslüman Dünya Birliği
}
# Açı tanımlamayan Aladhan metotları
_METHOD_REFS = {5: 1}
_DEFAULT_ANGLE_REF = 4


def angle_ref_for(profile: CalculationProfile) -> int:
    """
    Profile en yakın pyIslam açı referansını seç.

    pyIslam yalnızca sabit referans kabul eder; özel açılı profillerde
    toplam açı farkı en küçük olan referans kullanılır.
    """
    if profile.fajr_angle is None or profile.isha_angle is None:
        return _METHOD_REFS.get(profile.method, _DEFAULT_ANGLE_REF)
    return min(
        _REFERENCE_ANGLES,
        key=lambda ref: abs(_REFERENCE_ANGLES[ref][0] - profile.fajr_angle)
        + abs(_REFERENCE_ANGLES[ref][1] - profile.isha_angle),
    )


class LocalPrayerCalculator:
    """Ağ gerektirmeyen yedek vakit hesaplayıcı."""

    name = PROVIDER_NAME

    def __init__(self, rounding_seconds: int = 30) -> None:
        """
        Initialize calculator.

        Args:
            rounding_seconds: Dakikaya yuvarlama için eklenen saniye
        """
        self._rounding_seconds = rounding_seconds

    @staticmethod
    def _utc_offset_hours(tz: ZoneInfo, target_date: date) -> float:
        offset = datetime.combine(target_date, time(12), tzinfo=tz).utcoffset()
        if offset is None:
            return 0.0
        return offset.total_seconds() / 3600

    def _apply_offset(self, time_obj: time, target_date: date, minutes: int) -> str:
        """Vakite offset uygula ve HH:MM döndür."""
        dt = datetime.combine(target_date, time_obj)
        adjusted = dt + timedelta(minutes=minutes, seconds=self._rounding_seconds)
        return adjusted.strftime("%H:%M")

    def calculate(
        self,
        location: Location,
        target_date: date,
        profile: CalculationProfile,
    ) -> dict[PrayerName, str]:
        """
        Belirtilen gün için vakitleri hesapla.

        Raises:
            ProviderError: Yüksek enlemlerde hesaplama yapılamazsa
        """
        conf = PrayerConf(
            location.longitude,
            location.latitude,
            self._utc_offset_hours(location.tz, target_date),
            angle_ref_for(profile),
            2 if profile.school == 1 else 1,
        )
        prayer = Prayer(conf, target_date)

        try:
            raw = {
                PrayerName.FAJR: prayer.fajr_time(),
                PrayerName.SUNRISE: prayer.sherook_time(),
                PrayerName.DHUHR: prayer.dohr_time(),
                PrayerName.ASR: prayer.asr_time(),
                PrayerName.MAGHRIB: prayer.maghreb_time(),
                PrayerName.ISHA: prayer.ishaa_time(),
            }
        except (ValueError, ArithmeticError) as e:
            raise ProviderError(PROVIDER_NAME, f"hesaplama başarısız ({target_date}): {e}") from e

        return {
            name: self._apply_offset(value, target_date, profile.offsets.get_offset(name))
            for name, value in raw.items()
        }
