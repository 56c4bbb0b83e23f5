"""Web push delivery with pywebpush (VAPID)."""

import logging

from pywebpush import WebPushException, webpush
from requests import RequestException

from vakit_push.domain.errors import PushNotConfigured
from vakit_push.domain.models import (
    DeliveryResult,
    DeliveryStatus,
    NotificationPayload,
    Subscription,
)
from vakit_push.services.ports import PushSenderPort

logger = logging.getLogger(__name__)

# Push servisi bu kodlarla aboneliğin kalıcı olarak geçersiz olduğunu bildirir
GONE_STATUS_CODES = frozenset({404, 410})


class WebPushSender(PushSenderPort):
    """VAPID imzalı web-push gönderici."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        *,
        ttl: int = 3600,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize sender.

        Args:
            vapid_private_key: VAPID özel anahtarı
            vapid_subject: VAPID "sub" iddiası (mailto: veya https:)
            ttl: Push servisinde bekleme süresi (saniye)
            timeout: İstek zaman aşımı (saniye)
        """
        self._private_key = vapid_private_key.strip()
        self._subject = vapid_subject.strip()
        self._ttl = ttl
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        """VAPID anahtarları tanımlı mı?"""
        return bool(self._private_key and self._subject)

    def send(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryResult:
        """
        Bildirimi gönder.

        404/410 yanıtları GONE, diğer hatalar TRANSIENT olarak döner.

        Raises:
            PushNotConfigured: VAPID anahtarları eksikse
        """
        if not self.is_configured:
            raise PushNotConfigured("VAPID anahtarları tanımlı değil")

        try:
            response = webpush(
                subscription_info=subscription.subscription_info,
                data=payload.to_json(),
                vapid_private_key=self._private_key,
                vapid_claims={"sub": self._subject},
                ttl=self._ttl,
                timeout=self._timeout,
            )
        except WebPushException as e:
            status_code = getattr(getattr(e, "response", None), "status_code", None)
            if status_code in GONE_STATUS_CODES:
                logger.info(f"Abonelik süresi dolmuş: {subscription.id} (status={status_code})")
                return DeliveryResult(DeliveryStatus.GONE, status_code, str(e))
            logger.warning(f"Push gönderilemedi: {subscription.id} (status={status_code}): {e}")
            return DeliveryResult(DeliveryStatus.TRANSIENT, status_code, str(e))
        except RequestException as e:
            logger.warning(f"Push servisine ulaşılamadı: {subscription.id}: {e}")
            return DeliveryResult(DeliveryStatus.TRANSIENT, None, str(e))

        status_code = getattr(response, "status_code", None)
        logger.debug(f"Push gönderildi: {subscription.id} (status={status_code})")
        return DeliveryResult(DeliveryStatus.DELIVERED, status_code)
