"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Off-plan XIRR Calculator"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Database (only used by the database-backed rate cache)
    database_url: str = "sqlite:///./dev.db"

    # All calculation amounts are stored in this currency
    base_currency: str = "IDR"

    # Exchange rates
    rates_api_url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    rates_cache_key: str = "baliinvest_exchange_rates"
    rates_cache_backend: str = "memory"  # "memory" or "database"
    rates_freshness_hours: float = 12.0
    rates_timeout_seconds: float = 10.0

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
