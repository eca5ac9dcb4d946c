from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional


class NotificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NOTIFICATION_", env_file=".env", extra="ignore")

    # Delivery
    MAX_ATTEMPTS: int = 3
    DISPATCH_CONCURRENCY: int = 4

    # Scheduling
    SCHEDULER_ENABLED: bool = True
    SCAN_INTERVAL_SECONDS: int = 60
    SHUTDOWN_TIMEOUT_SECONDS: float = 30
    BATCH_SIZE: Optional[int] = None

    # Celery (alternative deployment of the dispatch tick)
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    # Identity verification for the HTTP layer
    IDENTITY_MODE: Literal["jwt", "api_key"] = "jwt"

    # Metrics
    METRICS_ENABLED: bool = True


settings = NotificationSettings()
