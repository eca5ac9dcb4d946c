import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from smartbills.core.config import Settings, settings as core_settings
from .api import router as notifications_router
from .attempt_log import AttemptLog
from .clock import Clock, SystemClock
from .config import NotificationSettings, settings as notification_settings
from .dispatcher import NotificationDispatcher
from .identity import IdentityVerifier, build_identity_verifier
from .mailer import DisabledMailer, Mailer, build_mailer
from .repository import NotificationStore
from .scheduler import DispatchScheduler

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    config: Optional[NotificationSettings] = None,
    store: Optional[NotificationStore] = None,
    mailer: Optional[Mailer] = None,
    clock: Optional[Clock] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    settings = settings or core_settings
    config = config or notification_settings
    clock = clock or SystemClock()
    store = store or NotificationStore.from_url(settings.SQLALCHEMY_DATABASE_URI, clock=clock)
    mailer = mailer or build_mailer(settings)
    attempt_log = AttemptLog(store)
    dispatcher = NotificationDispatcher(
        store,
        attempt_log,
        mailer,
        clock=clock,
        max_attempts=config.MAX_ATTEMPTS,
        concurrency=config.DISPATCH_CONCURRENCY,
        batch_size=config.BATCH_SIZE,
    )
    scheduler = DispatchScheduler(
        dispatcher,
        interval_seconds=config.SCAN_INTERVAL_SECONDS,
        shutdown_timeout=config.SHUTDOWN_TIMEOUT_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting up {settings.PROJECT_NAME}...")
        store.open()
        if not config.SCHEDULER_ENABLED:
            logger.info("⏸️ [Startup] Dispatch scheduler disabled by configuration")
        elif isinstance(mailer, DisabledMailer):
            logger.warning("⚠️ [Startup] Mail is not configured - dispatch scheduler not started")
        else:
            scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            store.close()
            logger.info("Shutdown complete")

    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.attempt_log = attempt_log
    app.state.mailer = mailer
    app.state.clock = clock
    app.state.dispatcher = dispatcher
    app.state.scheduler = scheduler
    app.state.identity_verifier = identity_verifier or build_identity_verifier(config.IDENTITY_MODE, settings)

    app.include_router(notifications_router, prefix="/notifications", tags=["notifications"])

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "service": "notifications"}

    if config.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")
    return app
