"""Service layer interfaces (ports)."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, Final

from vakit_push.domain.models import (
    CalculationProfile,
    DeliveryResult,
    Location,
    LocationRecord,
    NotificationPayload,
    Subscription,
    TimingSet,
)


class _Unset:
    """Compare-and-set beklentisi verilmedi işareti."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


class TimingProviderPort(ABC):
    """Vakit sağlayıcı stratejisi arayüzü (port)."""

    name: str = "provider"

    @abstractmethod
    def get_timings(
        self,
        location: Location,
        target_date: date,
        profile: CalculationProfile,
    ) -> TimingSet:
        """Belirtilen konum ve gün için doğrulanmış vakitleri döndür."""

    def get_month(
        self,
        location: Location,
        year: int,
        month: int,
        profile: CalculationProfile,
    ) -> list[TimingSet]:
        """Bir ayın vakitlerini döndür (varsayılan: desteklenmiyor)."""
        raise NotImplementedError(f"{self.name} aylık tablo desteklemiyor")


class LocationCatalogPort(ABC):
    """Bölgesel referans konum kataloğu arayüzü (port)."""

    @abstractmethod
    def list_locations(self) -> list[LocationRecord]:
        """Tüm referans konumları döndür."""


class SubscriptionStorePort(ABC):
    """Abonelik deposu arayüzü (port)."""

    @abstractmethod
    async def upsert(self, subscription: Subscription) -> None:
        """Kaydı yaz ve ID kümesine ekle."""

    @abstractmethod
    async def get(self, subscription_id: str) -> Subscription | None:
        """Kaydı oku."""

    @abstractmethod
    async def delete(self, subscription_id: str) -> bool:
        """Kaydı ve küme üyeliğini sil."""

    @abstractmethod
    async def set_fields(
        self,
        subscription_id: str,
        fields: dict[str, Any],
        *,
        expected_last_sent_at: Any = UNSET,
    ) -> bool:
        """
        Yalnızca verilen alanları güncelle.

        Args:
            subscription_id: Abonelik ID'si
            fields: Güncellenecek alanlar
            expected_last_sent_at: Verilirse, kayıttaki last_sent_at bu değere
                eşit değilse yazma yapılmaz (compare-and-set)

        Returns:
            Yazma yapıldı mı?
        """

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """Tüm abonelik ID'lerini döndür."""

    @abstractmethod
    async def list_active_ids(self) -> list[str]:
        """Aktif abonelik ID'lerini döndür."""


class PushSenderPort(ABC):
    """Push gönderim arayüzü (port)."""

    @abstractmethod
    def send(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryResult:
        """Bildirimi gönder ve sonucu sınıflandır."""


class SchedulerPort(ABC):
    """Zamanlayıcı arayüzü (port)."""

    @abstractmethod
    def schedule_every_minute(
        self,
        callback: Callable[[], Awaitable[Any]],
        job_id: str,
    ) -> None:
        """Her dakika çalışacak iş planla."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Tüm işleri iptal et."""

    @abstractmethod
    def get_scheduled_jobs(self) -> list[tuple[str, datetime]]:
        """Planlanmış işleri listele."""
