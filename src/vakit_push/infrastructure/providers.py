"""Timing provider strategies (regional, astronomical, offline)."""

import calendar
import logging
from datetime import date

from vakit_push.domain.errors import MissingDay
from vakit_push.domain.models import CalculationProfile, Location, PrayerName, TimingSet
from vakit_push.infrastructure.aladhan_client import AladhanClient
from vakit_push.infrastructure.bonnetid_client import BonnetidClient
from vakit_push.infrastructure.cache import TTLCache
from vakit_push.infrastructure.local_calculator import LocalPrayerCalculator
from vakit_push.services.location_resolver import RegionalLocationResolver
from vakit_push.services.ports import TimingProviderPort

logger = logging.getLogger(__name__)

MonthTable = dict[date, dict[PrayerName, str]]


class RegionalTimingProvider(TimingProviderPort):
    """Bölgesel hassas sağlayıcı: en yakın referans konumun aylık tablosu."""

    name = "bonnetid"

    def __init__(
        self,
        client: BonnetidClient,
        resolver: RegionalLocationResolver,
        month_cache: TTLCache[MonthTable],
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._month_cache = month_cache

    def _month_table(self, location: Location, year: int, month: int) -> MonthTable:
        location_id = self._resolver.resolve(location.latitude, location.longitude)
        return self._month_cache.get_or_load(
            (location_id, year, month),
            lambda: self._client.fetch_month(location_id, year, month),
        )

    def get_timings(
        self,
        location: Location,
        target_date: date,
        profile: CalculationProfile,
    ) -> TimingSet:
        """Aylık tablodan günün vakitlerini döndür."""
        table = self._month_table(location, target_date.year, target_date.month)
        day = table.get(target_date)
        if day is None:
            raise MissingDay(f"{target_date} bölgesel tabloda yok")
        return TimingSet.from_mapping(
            day,
            target_date=target_date,
            timezone=location.timezone,
            provider=self.name,
        ).validate()

    def get_month(
        self,
        location: Location,
        year: int,
        month: int,
        profile: CalculationProfile,
    ) -> list[TimingSet]:
        """Aylık tabloyu gün sırasıyla döndür."""
        table = self._month_table(location, year, month)
        return [
            TimingSet.from_mapping(
                table[day], target_date=day, timezone=location.timezone, provider=self.name
            )
            for day in sorted(table)
        ]


class AstronomicalTimingProvider(TimingProviderPort):
    """Genel astronomik sağlayıcı (Aladhan), profil ile ayarlanabilir."""

    name = "aladhan"

    def __init__(self, client: AladhanClient, cache: TTLCache) -> None:
        self._client = client
        self._cache = cache

    @staticmethod
    def _key(location: Location, profile: CalculationProfile, *period: int | date) -> tuple:
        return (
            round(location.latitude, 4),
            round(location.longitude, 4),
            location.timezone,
            profile,
            *period,
        )

    def get_timings(
        self,
        location: Location,
        target_date: date,
        profile: CalculationProfile,
    ) -> TimingSet:
        """Günün vakitlerini getir (doğrulanmış sonuç önbelleğe alınır)."""

        def load() -> TimingSet:
            timings = self._client.fetch_day(
                location.latitude,
                location.longitude,
                location.timezone,
                target_date,
                profile,
            )
            return TimingSet.from_mapping(
                timings,
                target_date=target_date,
                timezone=location.timezone,
                provider=f"{self.name}:{profile.name}",
            ).validate()

        return self._cache.get_or_load(self._key(location, profile, target_date), load)

    def get_month(
        self,
        location: Location,
        year: int,
        month: int,
        profile: CalculationProfile,
    ) -> list[TimingSet]:
        """Aylık takvimi getir."""

        def load() -> list[TimingSet]:
            table = self._client.fetch_month(
                location.latitude,
                location.longitude,
                location.timezone,
                year,
                month,
                profile,
            )
            return [
                TimingSet.from_mapping(
                    table[day],
                    target_date=day,
                    timezone=location.timezone,
                    provider=f"{self.name}:{profile.name}",
                )
                for day in sorted(table)
            ]

        return self._cache.get_or_load(self._key(location, profile, year, month), load)


class LocalTimingProvider(TimingProviderPort):
    """Ağ erişimi olmadan son çare hesaplama."""

    name = "local"

    def __init__(self, calculator: LocalPrayerCalculator | None = None) -> None:
        self._calculator = calculator or LocalPrayerCalculator()

    def get_timings(
        self,
        location: Location,
        target_date: date,
        profile: CalculationProfile,
    ) -> TimingSet:
        """Vakitleri yerel olarak hesapla."""
        return TimingSet.from_mapping(
            self._calculator.calculate(location, target_date, profile),
            target_date=target_date,
            timezone=location.timezone,
            provider=f"{self.name}:{profile.name}",
        ).validate()

    def get_month(
        self,
        location: Location,
        year: int,
        month: int,
        profile: CalculationProfile,
    ) -> list[TimingSet]:
        """Ayın her günü için hesapla."""
        _, days = calendar.monthrange(year, month)
        return [
            TimingSet.from_mapping(
                self._calculator.calculate(location, date(year, month, day), profile),
                target_date=date(year, month, day),
                timezone=location.timezone,
                provider=f"{self.name}:{profile.name}",
            )
            for day in range(1, days + 1)
        ]
