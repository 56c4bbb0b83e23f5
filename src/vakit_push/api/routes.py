"""API Routes."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from vakit_push import __version__
from vakit_push.api.dependencies import AppState, get_app_state
from vakit_push.api.schemas import (
    ApiResponse,
    CalendarSchema,
    DispatchReportSchema,
    PrayerTimeSchema,
    PushTestRequest,
    SubscribeRequest,
    SubscriptionSchema,
    SystemStatusSchema,
    TimingsSchema,
    UnsubscribeRequest,
    VapidPublicKeySchema,
)
from vakit_push.domain.errors import (
    PushNotConfigured,
    ResolutionError,
    SubscriptionNotFound,
)
from vakit_push.domain.models import (
    Location,
    NextPrayer,
    PrayerName,
    Subscription,
    TimingSet,
    from_epoch_ms,
    school_for_madhhab,
    subscription_id_for,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Konum değişince önbelleğe alınmış hedef geçersiz olur
_LOCATION_FIELDS = ("lat", "lon", "timezone", "country_code", "madhhab")


def _to_schema(subscription: Subscription) -> SubscriptionSchema:
    """Aboneliği kimlik bilgileri olmadan döndür."""
    next_at_iso = None
    if subscription.next_prayer_at is not None:
        next_at_iso = from_epoch_ms(subscription.next_prayer_at).isoformat()
    return SubscriptionSchema(
        id=subscription.id,
        active=subscription.active,
        has_endpoint=bool(subscription.endpoint),
        has_keys=bool(subscription.keys.get("p256dh") and subscription.keys.get("auth")),
        lat=subscription.lat,
        lon=subscription.lon,
        timezone=subscription.timezone,
        country_code=subscription.country_code,
        city=subscription.city,
        madhhab=subscription.madhhab,
        next_prayer_name=subscription.next_prayer_name,
        next_prayer_at=subscription.next_prayer_at,
        next_prayer_at_iso=next_at_iso,
        last_sent_at=subscription.last_sent_at,
        last_sent_name=subscription.last_sent_name,
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
    )


# ============== Status ==============


@router.get("/status", response_model=SystemStatusSchema)
async def get_status(state: Annotated[AppState, Depends(get_app_state)]) -> SystemStatusSchema:
    """Sistem durumunu getir."""
    uptime = datetime.now() - state.started_at
    scheduler = state.scheduler
    jobs = scheduler.get_scheduled_jobs() if scheduler is not None else []

    return SystemStatusSchema(
        version=__version__,
        uptime=str(uptime).split(".")[0],
        scheduler_running=scheduler is not None and scheduler.running,
        scheduled_jobs_count=len(jobs),
        regional_provider=state.timing_service.has_regional_provider,
        push_configured=state.config.push_configured,
        subscription_count=len(await state.store.list_ids()),
    )


# ============== Subscriptions ==============


async def _upcoming_for(state: AppState, subscription: Subscription) -> NextPrayer | None:
    """Abonenin sonraki vaktini hesapla, çözümlenemezse None."""
    timing = state.timing_service
    try:
        return await asyncio.to_thread(
            timing.next_prayer_for,
            timing.location_for(subscription),
            datetime.now().astimezone(),
            subscription.asr_school,
        )
    except ResolutionError as e:
        logger.warning(f"Abonelik için vakit hesaplanamadı ({subscription.id}): {e}")
        return None


@router.post("/subscribe", response_model=ApiResponse)
async def subscribe(
    request: SubscribeRequest,
    state: Annotated[AppState, Depends(get_app_state)],
) -> ApiResponse:
    """
    Aboneliği kaydet veya güncelle.

    Mevcut kayıtta yalnızca kimlik ve konum alanları yazılır; gönderim
    durumu dispatch döngüsüyle yarışmasın diye bekleyen vakit
    compare-and-set ile güncellenir.
    """
    endpoint = request.subscription.endpoint
    subscription_id = subscription_id_for(endpoint)
    profile = {
        "endpoint": endpoint,
        "keys": request.subscription.keys.model_dump(),
        "lat": request.lat,
        "lon": request.lon,
        "timezone": request.timezone,
        "country_code": request.country_code.upper() if request.country_code else None,
        "city": request.city,
        "madhhab": request.madhhab,
        "active": True,
    }

    existing = await state.store.get(subscription_id)
    if existing is not None and await state.store.set_fields(subscription_id, profile):
        updated = replace(existing, **profile)
        next_prayer_name = existing.next_prayer_name
        moved = any(getattr(existing, name) != profile[name] for name in _LOCATION_FIELDS)

        if moved or existing.next_prayer_at is None:
            upcoming = await _upcoming_for(state, updated)
            pending = {
                "next_prayer_name": upcoming.name.value if upcoming else None,
                "next_prayer_at": upcoming.at_ms if upcoming else None,
            }
            if await state.store.set_fields(
                subscription_id, pending, expected_last_sent_at=existing.last_sent_at
            ):
                next_prayer_name = pending["next_prayer_name"]
            else:
                logger.debug(f"Bekleyen vakit dispatch tarafından güncellendi: {subscription_id}")
        logger.info(f"Abonelik güncellendi: {subscription_id}")
    else:
        subscription = Subscription(id=subscription_id, **profile)
        upcoming = await _upcoming_for(state, subscription)
        if upcoming is not None:
            subscription.next_prayer_name = upcoming.name.value
            subscription.next_prayer_at = upcoming.at_ms
        await state.store.upsert(subscription)
        next_prayer_name = subscription.next_prayer_name
        logger.info(f"Abonelik kaydedildi: {subscription_id}")

    return ApiResponse(
        success=True,
        message="Abonelik kaydedildi.",
        data={"id": subscription_id, "next_prayer_name": next_prayer_name},
    )


@router.post("/unsubscribe", response_model=ApiResponse)
async def unsubscribe(
    request: UnsubscribeRequest,
    state: Annotated[AppState, Depends(get_app_state)],
) -> ApiResponse:
    """Aboneliği sil."""
    subscription_id = request.id or subscription_id_for(request.endpoint or "")
    deleted = await state.store.delete(subscription_id)
    return ApiResponse(
        success=True,
        message="Abonelik silindi." if deleted else "Abonelik bulunamadı.",
        data={"id": subscription_id, "deleted": deleted},
    )


@router.get("/subscriptions", response_model=list[SubscriptionSchema])
async def list_subscriptions(
    state: Annotated[AppState, Depends(get_app_state)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[SubscriptionSchema]:
    """Abonelikleri listele (hata ayıklama)."""
    result = []
    for subscription_id in (await state.store.list_ids())[:limit]:
        subscription = await state.store.get(subscription_id)
        if subscription is not None:
            result.append(_to_schema(subscription))
    return result


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionSchema)
async def get_subscription(
    subscription_id: str,
    state: Annotated[AppState, Depends(get_app_state)],
) -> SubscriptionSchema:
    """Tek bir aboneliği getir."""
    subscription = await state.store.get(subscription_id)
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Abonelik bulunamadı.")
    return _to_schema(subscription)


# ============== Prayer Times ==============


def _timings_schema(timings: TimingSet) -> TimingsSchema:
    return TimingsSchema(
        date=timings.date,
        timezone=timings.timezone,
        provider=timings.provider,
        prayers=[
            PrayerTimeSchema(
                name=prayer,
                display_name=prayer.display_name,
                time=timings.get_time(prayer),
                notifiable=prayer.is_notifiable,
            )
            for prayer in PrayerName
        ],
    )


@router.get("/timings", response_model=TimingsSchema)
async def get_timings(
    state: Annotated[AppState, Depends(get_app_state)],
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
    tz: str | None = None,
    cc: Annotated[str | None, Query(max_length=2)] = None,
    when: str = "today",
    madhhab: str | None = None,
) -> TimingsSchema:
    """Konum ve gün için çözümlenmiş vakitleri getir."""
    timing = state.timing_service
    tz_name = await asyncio.to_thread(timing.timezone_for, lat, lon, tz)
    try:
        target_date = timing.resolve_date(when, tz_name)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Geçersiz tarih: {when}",
        ) from e

    school = school_for_madhhab(madhhab)
    try:
        timings = await asyncio.to_thread(
            timing.get_timings, lat, lon, tz_name, cc, target_date, school=school
        )
    except ResolutionError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e

    return _timings_schema(timings)


@router.get("/calendar", response_model=CalendarSchema)
async def get_calendar(
    state: Annotated[AppState, Depends(get_app_state)],
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
    year: Annotated[int, Query(ge=1900, le=2200)],
    month: Annotated[int, Query(ge=1, le=12)],
    tz: str | None = None,
    cc: Annotated[str | None, Query(max_length=2)] = None,
    madhhab: str | None = None,
) -> CalendarSchema:
    """Bir ayın vakitlerini getir."""
    timing = state.timing_service
    tz_name = await asyncio.to_thread(timing.timezone_for, lat, lon, tz)
    location = Location(
        latitude=lat,
        longitude=lon,
        timezone=tz_name,
        country_code=(cc or "").upper(),
    )
    try:
        days = await asyncio.to_thread(
            timing.get_month, location, year, month, school_for_madhhab(madhhab)
        )
    except ResolutionError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e

    return CalendarSchema(
        year=year,
        month=month,
        timezone=tz_name,
        days=[_timings_schema(day) for day in days],
    )


# ============== Push ==============


@router.get("/vapid-public-key", response_model=VapidPublicKeySchema)
async def get_vapid_public_key(
    state: Annotated[AppState, Depends(get_app_state)],
) -> VapidPublicKeySchema:
    """Tarayıcı aboneliği için VAPID açık anahtarını döndür."""
    public_key = state.config.vapid_public_key.strip()
    if not public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="VAPID açık anahtarı tanımlı değil.",
        )
    return VapidPublicKeySchema(public_key=public_key)


# ============== Dispatch ==============


@router.post("/dispatch/run", response_model=DispatchReportSchema)
async def run_dispatch(
    state: Annotated[AppState, Depends(get_app_state)],
) -> DispatchReportSchema:
    """Dispatch döngüsünü hemen bir kez çalıştır."""
    report = await state.dispatch_service.run_tick()
    return DispatchReportSchema(**report.to_dict())


@router.post("/push/test", response_model=ApiResponse)
async def send_test_push(
    request: PushTestRequest,
    state: Annotated[AppState, Depends(get_app_state)],
) -> ApiResponse:
    """Kayıtlı aboneye test bildirimi gönder."""
    try:
        result = await state.dispatch_service.send_test(
            request.id,
            title=request.title,
            body=request.body,
            url=request.url,
        )
    except SubscriptionNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Abonelik bulunamadı."
        ) from e
    except PushNotConfigured as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push yapılandırılmamış.",
        ) from e

    return ApiResponse(
        success=result.delivered,
        message="Test bildirimi gönderildi." if result.delivered else "Test bildirimi gönderilemedi.",
        data={"status": result.status.value, "status_code": result.status_code},
    )
