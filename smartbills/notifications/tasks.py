from dataclasses import asdict
from functools import lru_cache

from smartbills.core.config import settings as core_settings
from .attempt_log import AttemptLog
from .celery_app import celery_app
from .config import settings
from .dispatcher import NotificationDispatcher
from .mailer import build_mailer
from .repository import NotificationStore


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    store = NotificationStore.from_url(core_settings.SQLALCHEMY_DATABASE_URI)
    store.open()
    return NotificationDispatcher(
        store,
        AttemptLog(store),
        build_mailer(core_settings),
        max_attempts=settings.MAX_ATTEMPTS,
        concurrency=settings.DISPATCH_CONCURRENCY,
        batch_size=settings.BATCH_SIZE,
    )


@celery_app.task(name="notifications.dispatch_due")
def dispatch_due_task() -> dict:
    """Run one dispatch tick. Returns the tick summary."""
    return asdict(get_dispatcher().run_tick())
