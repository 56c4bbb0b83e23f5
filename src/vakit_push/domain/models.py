"""Domain models and value objects."""

import base64
import hashlib
import json
import math
import time as _time
from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Self
from zoneinfo import ZoneInfo

from vakit_push.domain.errors import InvalidTimings


class PrayerName(str, Enum):
    """Namaz vakti isimleri (sabit gün içi sırası)."""

    FAJR = "Fajr"
    SUNRISE = "Sunrise"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def display_name(self) -> str:
        """Bildirimde görünen ad."""
        names = {
            PrayerName.FAJR: "Fajr",
            PrayerName.SUNRISE: "Soloppgang",
            PrayerName.DHUHR: "Dhuhr",
            PrayerName.ASR: "Asr",
            PrayerName.MAGHRIB: "Maghrib",
            PrayerName.ISHA: "Isha",
        }
        return names[self]

    @property
    def is_notifiable(self) -> bool:
        """Güneş hesaplanır ama bildirim hedefi değildir."""
        return self is not PrayerName.SUNRISE


NOTIFIABLE_PRAYERS: tuple[PrayerName, ...] = tuple(p for p in PrayerName if p.is_notifiable)


def now_ms() -> int:
    """Şu anki zaman (epoch milisaniye)."""
    return int(_time.time() * 1000)


def to_epoch_ms(moment: datetime) -> int:
    """Aware datetime -> epoch milisaniye."""
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int, tz: ZoneInfo | None = None) -> datetime:
    """Epoch milisaniye -> aware datetime."""
    return datetime.fromtimestamp(value / 1000, tz=tz or timezone.utc)


def school_for_madhhab(madhhab: str | None) -> int:
    """İkindi için fıkhi mezhep (1=Hanefi, 0=diğerleri)."""
    return 1 if str(madhhab or "").strip().lower() in ("1", "hanafi") else 0


def subscription_id_for(endpoint: str) -> str:
    """Push endpoint'inden deterministik abonelik ID'si üret."""
    digest = hashlib.sha256(endpoint.encode("utf-8")).digest()[:18]
    return "sub_" + base64.urlsafe_b64encode(digest).decode("ascii")


@dataclass(frozen=True)
class Location:
    """Konum bilgisi (immutable value object)."""

    latitude: float
    longitude: float
    timezone: str = "UTC"
    country_code: str = ""
    city: str = ""

    def __post_init__(self) -> None:
        """Koordinat doğrulaması."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Geçersiz enlem: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Geçersiz boylam: {self.longitude}")

    @property
    def tz(self) -> ZoneInfo:
        """Timezone nesnesi."""
        return ZoneInfo(self.timezone)


DEFAULT_LOCATION = Location(
    latitude=59.9139,
    longitude=10.7522,
    timezone="Europe/Oslo",
    country_code="NO",
    city="Oslo",
)


@dataclass(frozen=True)
class LocationRecord:
    """Bölgesel sağlayıcı kataloğundaki referans konum."""

    id: str
    lat: float
    lon: float
    name: str = ""

    @property
    def has_valid_coordinates(self) -> bool:
        """Koordinatlar sonlu sayı mı?"""
        return math.isfinite(self.lat) and math.isfinite(self.lon)


@dataclass(frozen=True)
class PrayerOffsets:
    """Namaz vakitlerine uygulanacak offset değerleri (dakika)."""

    fajr: int = 0
    sunrise: int = 0
    dhuhr: int = 0
    asr: int = 0
    maghrib: int = 0
    isha: int = 0

    def get_offset(self, prayer: PrayerName) -> int:
        """Belirtilen vakit için offset döndür."""
        mapping = {
            PrayerName.FAJR: self.fajr,
            PrayerName.SUNRISE: self.sunrise,
            PrayerName.DHUHR: self.dhuhr,
            PrayerName.ASR: self.asr,
            PrayerName.MAGHRIB: self.maghrib,
            PrayerName.ISHA: self.isha,
        }
        return mapping[prayer]


@dataclass(frozen=True)
class CalculationProfile:
    """Astronomik hesaplama parametreleri."""

    name: str
    method: int
    school: int = 0  # 0=Şafi, 1=Hanefi
    latitude_adjustment: int | None = None
    fajr_angle: float | None = None
    isha_angle: float | None = None
    offsets: PrayerOffsets = field(default_factory=PrayerOffsets)

    @property
    def is_tuned(self) -> bool:
        """Bölgeye özel açı/offset ayarı var mı?"""
        return self.fajr_angle is not None or self.offsets != PrayerOffsets()


# Mısır Genel Araştırma Kurumu (method=5)
DEFAULT_PROFILE = CalculationProfile(name="standard", method=5)

# Norveç (IRN) ayarı: özel açılar + temkin süreleri
NORWAY_PROFILE = CalculationProfile(
    name="norway",
    method=99,
    school=0,
    latitude_adjustment=3,
    fajr_angle=18.0,
    isha_angle=14.0,
    offsets=PrayerOffsets(fajr=-9, dhuhr=12, asr=0, maghrib=8, isha=-46),
)


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class TimingSet:
    """Bir konum ve gün için altı vakit (HH:MM, yerel saat)."""

    date: date
    timezone: str
    provider: str
    fajr: str
    sunrise: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str

    @classmethod
    def from_mapping(
        cls,
        timings: dict[PrayerName, str],
        *,
        target_date: date,
        timezone: str,
        provider: str,
    ) -> Self:
        """Normalize edilmiş eşlemden oluştur."""
        return cls(
            date=target_date,
            timezone=timezone,
            provider=provider,
            fajr=timings.get(PrayerName.FAJR, ""),
            sunrise=timings.get(PrayerName.SUNRISE, ""),
            dhuhr=timings.get(PrayerName.DHUHR, ""),
            asr=timings.get(PrayerName.ASR, ""),
            maghrib=timings.get(PrayerName.MAGHRIB, ""),
            isha=timings.get(PrayerName.ISHA, ""),
        )

    def get_time(self, prayer: PrayerName) -> str:
        """Belirtilen vaktin saatini döndür."""
        mapping = {
            PrayerName.FAJR: self.fajr,
            PrayerName.SUNRISE: self.sunrise,
            PrayerName.DHUHR: self.dhuhr,
            PrayerName.ASR: self.asr,
            PrayerName.MAGHRIB: self.maghrib,
            PrayerName.ISHA: self.isha,
        }
        return mapping[prayer]

    def validate(self) -> Self:
        """
        Altı vaktin dolu, farklı ve kesin artan olduğunu doğrula.

        Raises:
            InvalidTimings: Eksik veya sırası bozuk vakit varsa
        """
        missing = [p.value for p in PrayerName if not self.get_time(p)]
        if missing:
            raise InvalidTimings(f"{self.provider} {self.date}: eksik vakit {missing}")

        if self.maghrib == self.isha:
            raise InvalidTimings(
                f"{self.provider} {self.date}: Maghrib ve Isha aynı ({self.maghrib})"
            )

        previous: PrayerName | None = None
        for prayer in PrayerName:
            if previous is not None and _minutes(self.get_time(prayer)) <= _minutes(
                self.get_time(previous)
            ):
                raise InvalidTimings(
                    f"{self.provider} {self.date}: {prayer.value} ({self.get_time(prayer)}) "
                    f"{previous.value} ({self.get_time(previous)}) sonrasında değil"
                )
            previous = prayer
        return self

    def instant(self, prayer: PrayerName) -> datetime:
        """Vakti abonenin timezone'unda aware datetime olarak döndür."""
        hours, minutes = self.get_time(prayer).split(":")
        return datetime.combine(
            self.date,
            time(int(hours), int(minutes)),
            tzinfo=ZoneInfo(self.timezone),
        )

    def to_dict(self) -> dict[str, str]:
        """Dictionary olarak döndür."""
        data = {
            "date": self.date.isoformat(),
            "timezone": self.timezone,
            "provider": self.provider,
        }
        data.update({prayer.value: self.get_time(prayer) for prayer in PrayerName})
        return data


@dataclass(frozen=True)
class NextPrayer:
    """Abonenin bekleyen tek hedefi."""

    name: PrayerName
    at: datetime

    @property
    def at_ms(self) -> int:
        """Epoch milisaniye."""
        return to_epoch_ms(self.at)

    @property
    def hhmm(self) -> str:
        """Yerel HH:MM."""
        return self.at.strftime("%H:%M")


@dataclass
class Subscription:
    """Push endpoint başına bir abonelik kaydı."""

    id: str
    endpoint: str
    keys: dict[str, str] = field(default_factory=dict)
    lat: float | None = None
    lon: float | None = None
    timezone: str | None = None
    country_code: str | None = None
    city: str = ""
    madhhab: str | None = None
    active: bool = True
    next_prayer_name: str | None = None
    next_prayer_at: int | None = None
    last_sent_at: int | None = None
    last_sent_name: str | None = None
    created_at: int = field(default_factory=now_ms)
    updated_at: int | None = None

    @property
    def has_credentials(self) -> bool:
        """Gönderim için endpoint ve anahtarlar mevcut mu?"""
        return bool(self.endpoint and self.keys.get("p256dh") and self.keys.get("auth"))

    @property
    def has_coordinates(self) -> bool:
        """Konum koordinatları mevcut ve sonlu mu?"""
        return (
            self.lat is not None
            and self.lon is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lon)
        )

    @property
    def asr_school(self) -> int:
        """İkindi için fıkhi mezhep (1=Hanefi, 0=diğerleri)."""
        return school_for_madhhab(self.madhhab)

    @property
    def subscription_info(self) -> dict[str, Any]:
        """Push gönderimi için abonelik bilgisi."""
        return {"endpoint": self.endpoint, "keys": dict(self.keys)}

    def to_dict(self) -> dict[str, Any]:
        """Dictionary olarak döndür."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Dictionary'den oluştur (bilinmeyen alanlar yok sayılır)."""
        known = {k: v for k, v in data.items() if k in SUBSCRIPTION_FIELDS}
        known["keys"] = dict(known.get("keys") or {})
        return cls(**known)


SUBSCRIPTION_FIELDS = frozenset(f.name for f in fields(Subscription))


@dataclass(frozen=True)
class NotificationPayload:
    """Service worker'a gönderilen bildirim içeriği."""

    title: str
    body: str
    url: str = "/"
    tag: str | None = None
    icon: str | None = None
    badge: str | None = None

    def to_json(self) -> str:
        """Web-push için JSON'a çevir."""
        payload: dict[str, Any] = {
            "title": self.title,
            "body": self.body,
            "url": self.url,
        }
        if self.tag:
            payload["tag"] = self.tag
        if self.icon:
            payload["icon"] = self.icon
        if self.badge:
            payload["badge"] = self.badge
        return json.dumps(payload, ensure_ascii=False)


class DeliveryStatus(str, Enum):
    """Push gönderim sonucu."""

    DELIVERED = "delivered"
    GONE = "gone"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class DeliveryResult:
    """Push gönderim sonucu ve ayrıntısı."""

    status: DeliveryStatus
    status_code: int | None = None
    detail: str = ""

    @property
    def delivered(self) -> bool:
        """Başarıyla iletildi mi?"""
        return self.status is DeliveryStatus.DELIVERED
