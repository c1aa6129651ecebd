# buybox/core/config.py

import os
from functools import lru_cache
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # Rainforest product API
    RAINFOREST_API_KEY: str = ""
    RAINFOREST_BASE_URL: str = "https://api.rainforestapi.com/request"
    AMAZON_DOMAIN: str = "amazon.co.uk"
    DEFAULT_CURRENCY: str = "GBP"
    PROVIDER_TIMEOUT_SECONDS: float = 30.0
    PROVIDER_MIN_INTERVAL_SECONDS: float = 1.0   # Spacing between any two provider calls
    RATE_LIMIT_BACKOFF_SECONDS: float = 5.0      # Single wait after a 429, then give up

    # Tracking cadence
    TRACKING_ENABLED: bool = False
    TRACKING_PERIOD_SECONDS: int = 30
    INTER_ITEM_DELAY_SECONDS: float = 2.0
    SELLER_ITEM_LIMIT: int = 50

    # Webhook notifications
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    ALERT_ON_THIRD_PARTY_CHANGES: bool = True

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
