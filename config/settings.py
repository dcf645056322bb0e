"""
config/settings.py
Application settings loaded from environment variables.
Uses Pydantic BaseSettings for validation and type safety.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    APP_NAME: str = "NaOdludzie Functions"
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # ── Server ───────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # ── Database (Supabase Postgres) ─────────────────────────
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30

    # ── Supabase Auth ────────────────────────────────────────
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # ── Stripe ───────────────────────────────────────────────
    STRIPE_SECRET_KEY: str = ""
    STRIPE_API_VERSION: str = "2025-08-27.basil"
    STRIPE_ACCOUNT_COUNTRY: str = "PL"
    CURRENCY: str = "pln"
    PLATFORM_FEE_PERCENT: int = 7

    # ── Email (Resend) ───────────────────────────────────────
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "NaOdludzie <noreply@naodludzie.pl>"
    ADMIN_EMAIL: str = "kontakt@naodludzie.pl"

    # ── Frontend ─────────────────────────────────────────────
    PUBLIC_BASE_URL: str = "https://naodludzie.pl"
    ALLOWED_ORIGINS: str = "*"

    # ── Celery ───────────────────────────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # ── Business Config ──────────────────────────────────────
    BOOKING_REQUEST_EXPIRY_HOURS: int = 24
    CABIN_LISTING_DAYS: int = 60

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance, call this everywhere."""
    return Settings()


settings = get_settings()
