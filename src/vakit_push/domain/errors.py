"""Domain exceptions."""


class VakitPushError(Exception):
    """Base class for all service errors."""


class ProviderError(VakitPushError):
    """Upstream sağlayıcı hatası (ağ, non-2xx, bozuk JSON)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ResolutionError(VakitPushError):
    """Vakit çözümleme hatası."""


class NoLocationsAvailable(ResolutionError):
    """Bölgesel konum kataloğu boş veya erişilemez."""


class NoValidCandidate(ResolutionError):
    """Katalogdaki hiçbir konumun geçerli koordinatı yok."""


class MissingDay(ResolutionError):
    """Aylık tabloda istenen gün yok."""


class InvalidTimings(ResolutionError):
    """Vakitler eksik ya da kronolojik sırada değil."""


class TimingUnavailable(ResolutionError):
    """Hiçbir sağlayıcıdan geçerli vakit alınamadı."""


class PushNotConfigured(VakitPushError):
    """VAPID anahtarları tanımlı değil."""


class StoreUnavailable(VakitPushError):
    """Abonelik deposuna erişilemiyor."""


class SubscriptionNotFound(VakitPushError):
    """Abonelik kaydı bulunamadı."""
