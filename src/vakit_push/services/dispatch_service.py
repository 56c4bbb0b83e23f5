"""Per-minute notification dispatch service."""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from babel.dates import format_time

from vakit_push.config import AppConfig
from vakit_push.domain.errors import PushNotConfigured, ResolutionError, SubscriptionNotFound
from vakit_push.domain.models import (
    DeliveryResult,
    DeliveryStatus,
    Location,
    NotificationPayload,
    PrayerName,
    Subscription,
    from_epoch_ms,
    to_epoch_ms,
)
from vakit_push.services.ports import PushSenderPort, SubscriptionStorePort
from vakit_push.services.timing_service import TimingService

logger = logging.getLogger(__name__)

TICK_JOB_ID = "dispatch_tick"


class WindowState(str, Enum):
    """Abonenin bekleyen vakte göre durumu."""

    UNSCHEDULED = "unscheduled"
    TOO_EARLY = "too_early"
    ALREADY_SENT = "already_sent"
    DUE = "due"


class DispatchOutcome(str, Enum):
    """Tek abone değerlendirmesinin sonucu."""

    SENT = "sent"
    SCHEDULED = "scheduled"
    SKIPPED = "skipped"
    PRUNED = "pruned"
    FAILED = "failed"


def classify(
    now_ms: int,
    next_at: int | None,
    last_sent_at: int | None,
    tolerance_ms: int = 5 * 60_000,
    too_late_ms: int = 15 * 60_000,
) -> WindowState:
    """
    Gönderim penceresini sınıflandır (saf fonksiyon).

    Args:
        now_ms: Şu an (epoch ms)
        next_at: Bekleyen vakit (epoch ms)
        last_sent_at: Son gönderilen vakit (epoch ms)
        tolerance_ms: Vakitten önce gönderime izin verilen süre
        too_late_ms: Vakitten sonra gönderimin geçersiz sayıldığı süre
    """
    if next_at is None or now_ms - next_at > too_late_ms:
        return WindowState.UNSCHEDULED
    if now_ms < next_at - tolerance_ms:
        return WindowState.TOO_EARLY
    if last_sent_at is not None and last_sent_at >= next_at:
        return WindowState.ALREADY_SENT
    return WindowState.DUE


def is_due(
    now_ms: int,
    next_at: int | None,
    last_sent_at: int | None,
    tolerance_ms: int = 5 * 60_000,
    too_late_ms: int = 15 * 60_000,
) -> bool:
    """Bildirim şimdi gönderilmeli mi?"""
    return classify(now_ms, next_at, last_sent_at, tolerance_ms, too_late_ms) is WindowState.DUE


@dataclass
class DispatchReport:
    """Bir çalışmanın özet sayaçları."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    checked: int = 0
    sent: int = 0
    scheduled: int = 0
    skipped: int = 0
    pruned: int = 0
    failed: int = 0

    def record(self, outcome: DispatchOutcome) -> None:
        """Sonucu sayaçlara ekle."""
        self.checked += 1
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    def to_dict(self) -> dict[str, Any]:
        """Dictionary olarak döndür."""
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


def _display_name(name: str | None) -> str:
    try:
        return PrayerName(name).display_name
    except ValueError:
        return name or ""


class DispatchService:
    """Abonelere vakti geldiğinde bildirim gönderen servis."""

    def __init__(
        self,
        store: SubscriptionStorePort,
        timing_service: TimingService,
        sender: PushSenderPort,
        config: AppConfig,
    ) -> None:
        """
        Initialize dispatch service.

        Args:
            store: Abonelik deposu
            timing_service: Vakit çözümleme servisi
            sender: Push gönderici
            config: Uygulama yapılandırması
        """
        self._store = store
        self._timing = timing_service
        self._sender = sender
        self._config = config

    async def run_tick(self, now: datetime | None = None) -> DispatchReport:
        """
        Aktif aboneleri bir kez değerlendir.

        Bir abonedeki hata diğerlerini durdurmaz. Depo listelenemezse
        StoreUnavailable çağırana iletilir.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        report = DispatchReport(started_at=now)
        subscription_ids = await self._store.list_active_ids()
        semaphore = asyncio.Semaphore(max(1, self._config.dispatch_concurrency))

        async def worker(subscription_id: str) -> None:
            async with semaphore:
                outcome = await self._evaluate_safely(subscription_id, now)
            report.record(outcome)

        await asyncio.gather(*(worker(sub_id) for sub_id in subscription_ids))

        logger.info(
            f"Dispatch tamamlandı: kontrol={report.checked} gönderilen={report.sent} "
            f"planlanan={report.scheduled} atlanan={report.skipped} "
            f"silinen={report.pruned} hatalı={report.failed}"
        )
        return report

    async def _evaluate_safely(self, subscription_id: str, now: datetime) -> DispatchOutcome:
        try:
            return await self.evaluate(subscription_id, now)
        except ResolutionError as e:
            logger.warning(f"Vakit çözümlenemedi ({subscription_id}): {e}")
        except Exception as e:
            logger.error(f"Abone değerlendirilemedi ({subscription_id}): {e}", exc_info=True)
        return DispatchOutcome.FAILED

    async def evaluate(self, subscription_id: str, now: datetime) -> DispatchOutcome:
        """Tek bir aboneyi değerlendir ve gerekirse bildirim gönder."""
        subscription = await self._store.get(subscription_id)
        if subscription is None or not subscription.active:
            return DispatchOutcome.SKIPPED
        if not subscription.has_credentials:
            logger.info(f"Endpoint veya anahtar eksik, atlanıyor: {subscription_id}")
            return DispatchOutcome.SKIPPED

        state = classify(
            to_epoch_ms(now),
            subscription.next_prayer_at,
            subscription.last_sent_at,
            self._config.late_tolerance_ms,
            self._config.too_late_ms,
        )
        if state is WindowState.UNSCHEDULED:
            await self._reschedule(subscription, now)
            return DispatchOutcome.SCHEDULED
        if state is not WindowState.DUE:
            return DispatchOutcome.SKIPPED
        return await self._deliver(subscription, now)

    async def _reschedule(self, subscription: Subscription, reference: datetime) -> None:
        """Referans andan sonraki ilk vakti hesapla ve kaydet."""
        location = self._timing.location_for(subscription)
        upcoming = await asyncio.to_thread(
            self._timing.next_prayer_for, location, reference, subscription.asr_school
        )
        await self._store.set_fields(
            subscription.id,
            {"next_prayer_name": upcoming.name.value, "next_prayer_at": upcoming.at_ms},
        )
        logger.debug(f"Sonraki vakit: {subscription.id} -> {upcoming.name.value} {upcoming.at.isoformat()}")

    async def _release(self, subscription: Subscription) -> None:
        """Gönderilemeyen vakit için sahiplenmeyi geri al."""
        await self._store.set_fields(
            subscription.id,
            {
                "last_sent_at": subscription.last_sent_at,
                "last_sent_name": subscription.last_sent_name,
            },
            expected_last_sent_at=subscription.next_prayer_at,
        )

    async def _deliver(self, subscription: Subscription, now: datetime) -> DispatchOutcome:
        """
        Bildirimi hazırla, vakti sahiplen, gönder, sonucu işle.

        last_sent_at gönderimden önce compare-and-set ile yazılır, böylece
        eşzamanlı iki değerlendirme aynı vakti iki kez gönderemez.
        """
        next_at = subscription.next_prayer_at
        location = self._timing.location_for(subscription)
        payload = self.build_payload(
            subscription.next_prayer_name,
            from_epoch_ms(next_at, location.tz),  # type: ignore[arg-type]
            location,
        )

        claimed = await self._store.set_fields(
            subscription.id,
            {"last_sent_at": next_at, "last_sent_name": subscription.next_prayer_name},
            expected_last_sent_at=subscription.last_sent_at,
        )
        if not claimed:
            logger.debug(f"Vakit başka bir çalışma tarafından alındı: {subscription.id}")
            return DispatchOutcome.SKIPPED

        try:
            result = await asyncio.to_thread(self._sender.send, subscription, payload)
        except PushNotConfigured as e:
            logger.warning(f"Push yapılandırılmamış, gönderim ertelendi ({subscription.id}): {e}")
            result = DeliveryResult(DeliveryStatus.TRANSIENT, detail=str(e))
        except Exception:
            await self._release(subscription)
            raise

        if result.status is DeliveryStatus.GONE:
            await self._store.delete(subscription.id)
            return DispatchOutcome.PRUNED
        if result.status is DeliveryStatus.TRANSIENT:
            await self._release(subscription)
            return DispatchOutcome.FAILED

        logger.info(f"Bildirim gönderildi: {subscription.id} -> {subscription.next_prayer_name}")
        try:
            await self._reschedule(subscription, max(now, from_epoch_ms(next_at)))  # type: ignore[arg-type]
        except ResolutionError as e:
            logger.warning(f"Gönderim sonrası sonraki vakit bulunamadı ({subscription.id}): {e}")
        return DispatchOutcome.SENT

    def build_payload(
        self,
        prayer_name: str | None,
        at: datetime,
        location: Location,
    ) -> NotificationPayload:
        """Vakit bildirimi içeriğini oluştur."""
        local = at.astimezone(location.tz)
        clock = format_time(local, "HH:mm", tzinfo=location.tz, locale=self._config.locale)
        return NotificationPayload(
            title=f"Tid for {_display_name(prayer_name)}",
            body=f"Kl. {clock} ({location.timezone})",
            url=self._config.notification_url,
            tag=f"{prayer_name}-{local.date().isoformat()}",
            icon=self._config.notification_icon or None,
            badge=self._config.notification_badge or None,
        )

    async def send_test(
        self,
        subscription_id: str,
        *,
        title: str | None = None,
        body: str | None = None,
        url: str | None = None,
    ) -> DeliveryResult:
        """
        Kayıtlı bir aboneye test bildirimi gönder.

        Raises:
            SubscriptionNotFound: Kayıt yoksa
            PushNotConfigured: VAPID anahtarları eksikse
        """
        subscription = await self._store.get(subscription_id)
        if subscription is None:
            raise SubscriptionNotFound(subscription_id)

        payload = NotificationPayload(
            title=title or "Vakit-Push",
            body=body or "Test bildirimi",
            url=url or self._config.notification_url,
            tag="test",
            icon=self._config.notification_icon or None,
            badge=self._config.notification_badge or None,
        )
        result = await asyncio.to_thread(self._sender.send, subscription, payload)
        if result.status is DeliveryStatus.GONE:
            await self._store.delete(subscription_id)
        return result
