"""Application settings, read from BOOKING_* environment variables or .env"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BOOKING_", env_file=".env", extra="ignore")

    # Auth
    secret_key: str = "your-secret-key-keep-it-secret"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Booking rules
    arrival_grace_minutes: int = 10
    default_checkout_hour: str = "12:00"
    # Arrivals sent without an offset are read in this zone
    hotel_timezone: str = "America/Bogota"
    active_listing_limit: int = 100
    currency: str = "COP"

    # Runtime
    log_level: str = "INFO"
    seed_demo_data: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
