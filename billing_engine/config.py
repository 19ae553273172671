"""
EaseMail Billing - Configuration Settings

This module handles all engine configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

import logging
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "EaseMail Billing"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ===========================================
    # DATABASE CONFIGURATION
    # Read-only access to the admin pricing tables
    # ===========================================
    database_url_async: str = "postgresql+asyncpg://localhost:5432/easemail"
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # ===========================================
    # BILLING
    # ===========================================
    billing_currency: str = "USD"  # Display only, amounts are never converted
    currency_minor_units: int = 2


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


def configure_logging(settings: Settings = None) -> None:
    """Configure root logging for billing jobs."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Export settings instance
settings = get_settings()
