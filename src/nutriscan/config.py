"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    off_base_url: str = "https://world.openfoodfacts.org"
    barcode_timeout_seconds: float = 15.0
    vision_timeout_seconds: float = 45.0
    barcode_retry_attempts: int = 2
    vision_retry_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    barcode_cache_ttl_seconds: int = 86400
    undo_window_seconds: float = 4.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
