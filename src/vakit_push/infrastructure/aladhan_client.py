"""Generic astronomical prayer time provider client (Aladhan API)."""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from requests import Session

from vakit_push.domain.errors import ProviderError
from vakit_push.domain.models import CalculationProfile, PrayerName, PrayerOffsets
from vakit_push.infrastructure.http import build_session, get_json
from vakit_push.services.normalizer import map_timings

logger = logging.getLogger(__name__)

PROVIDER_NAME = "aladhan"


def _number(value: float) -> str:
    return f"{value:g}"


def build_params(profile: CalculationProfile) -> dict[str, str]:
    """
    Hesaplama profilini Aladhan sorgu parametrelerine çevir.

    tune sırası: Imsak, Fajr, Sunrise, Dhuhr, Asr, Maghrib, Sunset, Isha, Midnight
    """
    params = {
        "method": str(profile.method),
        "school": str(profile.school),
    }
    if profile.latitude_adjustment is not None:
        params["latitudeAdjustmentMethod"] = str(profile.latitude_adjustment)
    if profile.fajr_angle is not None and profile.isha_angle is not None:
        params["methodSettings"] = (
            f"{_number(profile.fajr_angle)},null,{_number(profile.isha_angle)}"
        )

    offsets = profile.offsets
    if offsets != PrayerOffsets():
        tune = [
            0,
            offsets.fajr,
            offsets.sunrise,
            offsets.dhuhr,
            offsets.asr,
            offsets.maghrib,
            0,
            offsets.isha,
            0,
        ]
        params["tune"] = ",".join(str(value) for value in tune)
    return params


def _check_envelope(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ProviderError(PROVIDER_NAME, "beklenmeyen yanıt şekli")
    code = payload.get("code")
    if code is not None and code != 200:
        raise ProviderError(PROVIDER_NAME, f"API kodu {code}: {payload.get('status', '')}")
    return payload


def parse_day(payload: Any) -> dict[PrayerName, str]:
    """Günlük yanıtı ({data:{timings:{...}}}) vakit eşlemesine çevir."""
    return map_timings(_check_envelope(payload))


def parse_calendar(payload: Any) -> dict[date, dict[PrayerName, str]]:
    """Aylık takvim yanıtını gün -> vakitler eşlemesine çevir."""
    entries = _check_envelope(payload).get("data")
    if not isinstance(entries, list):
        raise ProviderError(PROVIDER_NAME, "takvim verisi liste değil")

    table: dict[date, dict[PrayerName, str]] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        gregorian = (entry.get("date") or {}).get("gregorian") or {}
        try:
            day = datetime.strptime(str(gregorian.get("date", "")), "%d-%m-%Y").date()
        except ValueError:
            continue
        table[day] = map_timings(entry)
    return table


class AladhanClient:
    """Aladhan REST API istemcisi."""

    name = PROVIDER_NAME

    def __init__(
        self,
        base_url: str,
        *,
        session: Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: API kök adresi (ör. https://api.aladhan.com/v1)
            session: Paylaşılan requests oturumu
            timeout: İstek zaman aşımı (saniye)
        """
        self._base_url = base_url.rstrip("/")
        self._session = session or build_session()
        self._timeout = timeout

    def fetch_day(
        self,
        lat: float,
        lon: float,
        tz: str,
        target_date: date,
        profile: CalculationProfile,
    ) -> dict[PrayerName, str]:
        """Bir günün vakitlerini getir."""
        payload = get_json(
            self._session,
            f"{self._base_url}/timings/{target_date.strftime('%d-%m-%Y')}",
            provider=PROVIDER_NAME,
            timeout=self._timeout,
            params={
                "latitude": lat,
                "longitude": lon,
                "timezonestring": tz,
                **build_params(profile),
            },
        )
        return parse_day(payload)

    def fetch_month(
        self,
        lat: float,
        lon: float,
        tz: str,
        year: int,
        month: int,
        profile: CalculationProfile,
    ) -> dict[date, dict[PrayerName, str]]:
        """Bir ayın vakitlerini getir."""
        payload = get_json(
            self._session,
            f"{self._base_url}/calendar/{year}/{month}",
            provider=PROVIDER_NAME,
            timeout=self._timeout,
            params={
                "latitude": lat,
                "longitude": lon,
                "timezonestring": tz,
                **build_params(profile),
            },
        )
        table = parse_calendar(payload)
        logger.info(f"Aladhan takvimi alındı: {year}-{month:02d} ({len(table)} gün, {profile.name})")
        return table
