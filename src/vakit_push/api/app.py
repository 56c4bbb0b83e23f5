"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vakit_push import __version__
from vakit_push.api.dependencies import AppState, build_app_state, shutdown_app_state
from vakit_push.api.routes import router as api_router
from vakit_push.config import AppConfig
from vakit_push.domain.errors import StoreUnavailable
from vakit_push.services.dispatch_service import TICK_JOB_ID

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    logger.info("Vakit-Push başlatılıyor...")

    state: AppState | None = app.state.vakit
    if state is None:
        state = build_app_state(app.state.config)
        app.state.vakit = state

    if state.scheduler is not None:
        dispatch_service = state.dispatch_service

        async def tick() -> None:
            try:
                await dispatch_service.run_tick()
            except StoreUnavailable as e:
                logger.error(f"Dispatch iptal edildi, depo erişilemez: {e}")

        state.scheduler.start()
        state.scheduler.schedule_every_minute(tick, TICK_JOB_ID)

    logger.info("Vakit-Push hazır!")

    yield

    # Shutdown
    logger.info("Vakit-Push kapatılıyor...")
    shutdown_app_state(state)
    logger.info("Vakit-Push kapatıldı.")


def create_app(
    config: AppConfig | None = None,
    state: AppState | None = None,
) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        config: Uygulama yapılandırması (varsayılan: ortam değişkenleri)
        state: Önceden kurulmuş uygulama durumu (testler için)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Vakit-Push",
        description="Namaz vakitlerinde web-push bildirimi gönderen servis",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config in app state
    app.state.config = config or (state.config if state else AppConfig.from_env())
    app.state.vakit = state

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routes
    app.include_router(api_router, prefix="/api")

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        """Depo hatalarını 503 olarak döndür."""
        logger.error(f"Depo erişilemez: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Abonelik deposu erişilemez"})

    # Health check
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
