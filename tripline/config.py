"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Logging
    log_level: str = "INFO"

    # Time defaults (HH:MM)
    default_time: str = Field("09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    default_hotel_check_in: str = Field("15:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")

    # Timing buffers (minutes)
    airport_buffer_min: int = 90
    check_in_settle_min: int = 30

    # Default durations (minutes)
    activity_duration_min: int = 120
    meal_duration_min: int = 90

    # Itinerary distribution policy
    distribution_min_offered: int = 3
    distribution_min_day_fraction: float = 0.5
    first_day_min_offered: int = 1

    # Optimistic versioning
    version_commit_max_attempts: int = 3


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
