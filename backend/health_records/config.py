"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env")

    database_url: str = "sqlite:///./health_records.db"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Key-value storage
    storage_key_prefix: str = "health_"
    export_version: str = "1.0.0"

    # Alert bookkeeping
    # Off by default: every detection run appends whatever it finds.
    suppress_duplicate_alerts: bool = False
    cascade_alert_delete: bool = False


settings = Settings()
