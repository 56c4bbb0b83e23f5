"""Pydantic schemas for API."""

from datetime import date
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vakit_push.domain.models import PrayerName


class SubscriptionKeysSchema(BaseModel):
    """Push abonelik anahtarları."""

    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionSchema(BaseModel):
    """Tarayıcının PushSubscription nesnesi."""

    endpoint: str = Field(min_length=1, description="Push servis adresi")
    keys: SubscriptionKeysSchema


class SubscribeRequest(BaseModel):
    """Abonelik isteği."""

    model_config = ConfigDict(populate_by_name=True)

    subscription: PushSubscriptionSchema
    lat: Annotated[float | None, Field(ge=-90, le=90, description="Enlem")] = None
    lon: Annotated[float | None, Field(ge=-180, le=180, description="Boylam")] = None
    timezone: str | None = Field(default=None, description="IANA timezone")
    country_code: str | None = Field(default=None, alias="countryCode", max_length=2)
    city: str = Field(default="", description="Şehir adı")
    madhhab: str | None = Field(default=None, description="İkindi mezhebi (hanafi/shafi)")


class UnsubscribeRequest(BaseModel):
    """Abonelik iptal isteği (endpoint veya id)."""

    endpoint: str | None = None
    id: str | None = None

    @model_validator(mode="after")
    def check_identifier(self) -> Self:
        """En az bir tanımlayıcı gerekli."""
        if not self.endpoint and not self.id:
            raise ValueError("endpoint veya id gerekli")
        return self


class SubscriptionSchema(BaseModel):
    """Abonelik görünümü (kimlik bilgileri olmadan)."""

    id: str
    active: bool
    has_endpoint: bool
    has_keys: bool
    lat: float | None
    lon: float | None
    timezone: str | None
    country_code: str | None
    city: str
    madhhab: str | None
    next_prayer_name: str | None
    next_prayer_at: int | None
    next_prayer_at_iso: str | None
    last_sent_at: int | None
    last_sent_name: str | None
    created_at: int
    updated_at: int | None


class PrayerTimeSchema(BaseModel):
    """Tek namaz vakti şeması."""

    name: PrayerName
    display_name: str
    time: str  # HH:MM formatında
    notifiable: bool


class TimingsSchema(BaseModel):
    """Günlük namaz vakitleri şeması."""

    date: date
    timezone: str
    provider: str
    prayers: list[PrayerTimeSchema]


class CalendarSchema(BaseModel):
    """Aylık namaz vakitleri şeması."""

    year: int
    month: int
    timezone: str
    days: list[TimingsSchema]


class VapidPublicKeySchema(BaseModel):
    """Tarayıcının pushManager.subscribe için kullandığı VAPID açık anahtarı."""

    public_key: str = Field(serialization_alias="publicKey")


class DispatchReportSchema(BaseModel):
    """Dispatch çalışması özeti."""

    started_at: str
    checked: int
    sent: int
    scheduled: int
    skipped: int
    pruned: int
    failed: int


class PushTestRequest(BaseModel):
    """Test bildirimi isteği."""

    id: str = Field(min_length=1)
    title: str | None = None
    body: str | None = None
    url: str | None = None


class SystemStatusSchema(BaseModel):
    """Sistem durumu şeması."""

    version: str
    uptime: str
    scheduler_running: bool
    scheduled_jobs_count: int
    regional_provider: bool
    push_configured: bool
    subscription_count: int


class ApiResponse(BaseModel):
    """Genel API yanıt şeması."""

    success: bool
    message: str
    data: dict | list | None = None
