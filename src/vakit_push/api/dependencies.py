"""Application state and dependencies."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import Request
from requests import Session

from vakit_push.config import AppConfig
from vakit_push.infrastructure.aladhan_client import AladhanClient
from vakit_push.infrastructure.bonnetid_client import BonnetidClient
from vakit_push.infrastructure.cache import TTLCache
from vakit_push.infrastructure.http import build_session
from vakit_push.infrastructure.providers import (
    AstronomicalTimingProvider,
    LocalTimingProvider,
    RegionalTimingProvider,
)
from vakit_push.infrastructure.scheduler import APSchedulerAdapter
from vakit_push.infrastructure.subscription_store import JsonSubscriptionStore
from vakit_push.infrastructure.webpush_sender import WebPushSender
from vakit_push.services.dispatch_service import DispatchService
from vakit_push.services.location_resolver import RegionalLocationResolver
from vakit_push.services.ports import PushSenderPort, SubscriptionStorePort
from vakit_push.services.timing_service import TimingService

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Application state container."""

    config: AppConfig
    store: SubscriptionStorePort
    timing_service: TimingService
    dispatch_service: DispatchService
    sender: PushSenderPort
    scheduler: APSchedulerAdapter | None = None
    session: Session | None = None
    started_at: datetime = field(default_factory=datetime.now)


def build_timing_service(config: AppConfig, session: Session | None = None) -> TimingService:
    """Sağlayıcı zincirini yapılandırmadan kur."""
    session = session or build_session()

    bonnetid = BonnetidClient(
        config.bonnetid_api_url,
        config.bonnetid_api_token,
        session=session,
        timeout=config.http_timeout,
    )
    regional = None
    if bonnetid.is_configured:
        resolver = RegionalLocationResolver(
            bonnetid, TTLCache(config.location_cache_ttl, name="locations")
        )
        regional = RegionalTimingProvider(
            bonnetid, resolver, TTLCache(config.month_cache_ttl, name="bonnetid-months")
        )
    else:
        logger.info("Bønnetid API anahtarı yok, bölgesel sağlayıcı devre dışı.")

    astronomical = AstronomicalTimingProvider(
        AladhanClient(config.aladhan_api_url, session=session, timeout=config.http_timeout),
        TTLCache(config.month_cache_ttl, name="aladhan"),
    )

    return TimingService(
        astronomical=astronomical,
        regional=regional,
        local=LocalTimingProvider(),
        default_location=config.default_location,
    )


def build_app_state(config: AppConfig) -> AppState:
    """
    Build application state from configuration.

    Args:
        config: Uygulama yapılandırması

    Returns:
        Wired AppState
    """
    session = build_session()
    timing_service = build_timing_service(config, session)
    store = JsonSubscriptionStore(config.store_path)
    sender = WebPushSender(
        config.vapid_private_key,
        config.vapid_subject,
        ttl=config.push_ttl,
        timeout=config.http_timeout,
    )
    if not config.push_configured:
        logger.warning("VAPID anahtarları tanımlı değil, bildirimler gönderilemeyecek.")

    dispatch_service = DispatchService(store, timing_service, sender, config)

    return AppState(
        config=config,
        store=store,
        timing_service=timing_service,
        dispatch_service=dispatch_service,
        sender=sender,
        scheduler=APSchedulerAdapter() if config.scheduler_enabled else None,
        session=session,
    )


def shutdown_app_state(state: AppState) -> None:
    """Shutdown application state."""
    if state.scheduler is not None:
        state.scheduler.cancel_all()
        state.scheduler.shutdown()
    if state.session is not None:
        state.session.close()


def get_app_state(request: Request) -> AppState:
    """Get current application state."""
    state = getattr(request.app.state, "vakit", None)
    if state is None:
        raise RuntimeError("Application state not initialized")
    return state
