from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from urllib.parse import quote_plus
from enum import Enum


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Project Information
    PROJECT_NAME: str = "SmartBills Notifications"
    VERSION: str = "0.1.0"

    # Server settings
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001

    # Database
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "BillManagementDB"
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Security
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    VALID_API_KEYS: List[str] = []

    # SMTP
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_FROM: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: float = 30.0

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # --- Validators & Derived Settings ---
    @field_validator("VALID_API_KEYS", mode="before")
    @classmethod
    def split_api_keys(cls, v):
        # Accept comma-separated strings as well as JSON lists
        if isinstance(v, str):
            return [key.strip() for key in v.split(",") if key.strip()]
        return v

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # Derive SQLALCHEMY_DATABASE_URI if not provided
        if not self.SQLALCHEMY_DATABASE_URI:
            if self.POSTGRES_USER and self.POSTGRES_SERVER:
                safe_user = quote_plus(self.POSTGRES_USER)
                host = f"{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                if self.POSTGRES_PASSWORD:
                    safe_password = quote_plus(self.POSTGRES_PASSWORD)
                    self.SQLALCHEMY_DATABASE_URI = f"postgresql://{safe_user}:{safe_password}@{host}"
                else:
                    self.SQLALCHEMY_DATABASE_URI = f"postgresql://{safe_user}@{host}"
            else:
                self.SQLALCHEMY_DATABASE_URI = "sqlite:///./smartbills.db"
        return self

    @property
    def email_enabled(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    @property
    def mail_from(self) -> str:
        return self.SMTP_FROM or f"SmartBills <{self.SMTP_USER or 'no-reply@smartbills.com'}>"


settings = Settings()
