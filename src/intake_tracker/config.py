"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    internal_token: str
    fdc_api_key: str
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    notification_webhook_url: str | None = None
    notification_token: str | None = None
    persistence_timeout_seconds: float = 5.0
    conflict_retries: int = 2
    realtime_send_timeout_seconds: float = 5.0
    goal_warning_debounce_seconds: float = 2.0
    catalog_cache_max_entries: int = 1024
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
