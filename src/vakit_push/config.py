"""Configuration management."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from vakit_push.domain.models import DEFAULT_LOCATION, Location


def _get_default_store_path() -> Path:
    """Get default subscription store path."""
    return Path.home() / ".local" / "share" / "vakit-push" / "subscriptions.json"


def _env(name: str, default: str) -> str:
    return os.getenv(f"VAKIT_PUSH_{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(f"VAKIT_PUSH_{name}")
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """Application configuration."""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Subscription store
    store_path: Path = field(default_factory=_get_default_store_path)

    # Upstream providers
    bonnetid_api_url: str = "https://api.bonnetid.no"
    bonnetid_api_token: str = ""
    aladhan_api_url: str = "https://api.aladhan.com/v1"
    http_timeout: float = 10.0
    location_cache_ttl: int = 7 * 24 * 3600
    month_cache_ttl: int = 12 * 3600

    # Web push (VAPID)
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:admin@example.com"
    push_ttl: int = 3600

    # Dispatch window
    late_tolerance_minutes: int = 5
    too_late_minutes: int = 15
    dispatch_concurrency: int = 8
    scheduler_enabled: bool = True

    # Notification content
    notification_url: str = "/"
    notification_icon: str = ""
    notification_badge: str = ""
    locale: str = "nb_NO"

    default_location: Location = DEFAULT_LOCATION

    @property
    def late_tolerance_ms(self) -> int:
        """Vakitten önceki gönderim toleransı (ms)."""
        return self.late_tolerance_minutes * 60_000

    @property
    def too_late_ms(self) -> int:
        """Vakitten sonra gönderimin geçersiz sayıldığı eşik (ms)."""
        return self.too_late_minutes * 60_000

    @property
    def push_configured(self) -> bool:
        """Gönderim için VAPID özel anahtarı ve subject tanımlı mı?"""
        return bool(self.vapid_private_key.strip() and self.vapid_subject.strip())

    @classmethod
    def from_env(cls) -> Self:
        """Load configuration from environment variables."""
        default_location = Location(
            latitude=float(_env("DEFAULT_LAT", str(DEFAULT_LOCATION.latitude))),
            longitude=float(_env("DEFAULT_LON", str(DEFAULT_LOCATION.longitude))),
            timezone=_env("DEFAULT_TZ", DEFAULT_LOCATION.timezone),
            country_code=_env("DEFAULT_COUNTRY", DEFAULT_LOCATION.country_code).upper(),
            city=_env("DEFAULT_CITY", DEFAULT_LOCATION.city),
        )
        return cls(
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "8080")),
            log_level=_env("LOG_LEVEL", "INFO"),
            store_path=Path(_env("STORE_PATH", str(_get_default_store_path()))).expanduser(),
            bonnetid_api_url=_env("BONNETID_API_URL", "https://api.bonnetid.no"),
            bonnetid_api_token=_env("BONNETID_API_TOKEN", ""),
            aladhan_api_url=_env("ALADHAN_API_URL", "https://api.aladhan.com/v1"),
            http_timeout=float(_env("HTTP_TIMEOUT", "10")),
            location_cache_ttl=int(_env("LOCATION_CACHE_TTL", str(7 * 24 * 3600))),
            month_cache_ttl=int(_env("MONTH_CACHE_TTL", str(12 * 3600))),
            vapid_public_key=_env("VAPID_PUBLIC_KEY", ""),
            vapid_private_key=_env("VAPID_PRIVATE_KEY", ""),
            vapid_subject=_env("VAPID_SUBJECT", "mailto:admin@example.com"),
            push_ttl=int(_env("PUSH_TTL", "3600")),
            late_tolerance_minutes=int(_env("LATE_TOLERANCE_MINUTES", "5")),
            too_late_minutes=int(_env("TOO_LATE_MINUTES", "15")),
            dispatch_concurrency=int(_env("DISPATCH_CONCURRENCY", "8")),
            scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
            notification_url=_env("NOTIFICATION_URL", "/"),
            notification_icon=_env("NOTIFICATION_ICON", ""),
            notification_badge=_env("NOTIFICATION_BADGE", ""),
            locale=_env("LOCALE", "nb_NO"),
            default_location=default_location,
        )


def setup_logging(level: str = "INFO") -> None:
    """Setup application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
