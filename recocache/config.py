"""Configuration for the RecoCache service.

Settings are read from environment variables prefixed with ``RECOCACHE_``
(and an optional ``.env`` file) and validated by Pydantic.
"""

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Cached recommendations younger than this are served without retraining.
DEFAULT_STALENESS_WINDOW_HOURS = 3.0
DEFAULT_FALLBACK_SIZE = 10
DEFAULT_TOP_N = 10
DEFAULT_FETCH_WORKERS = 8


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RECOCACHE_",
        env_file=".env",
        extra="ignore",
    )

    staleness_window_hours: float = Field(
        default=DEFAULT_STALENESS_WINDOW_HOURS,
        description="Maximum age of cached recommendations before retraining",
    )
    fallback_size: int = Field(default=DEFAULT_FALLBACK_SIZE, ge=0)
    top_n: int = Field(default=DEFAULT_TOP_N, ge=1)
    min_actions_for_training: int = Field(
        default=0,
        ge=0,
        description="Users with fewer recorded actions get the cold-start list; 0 disables",
    )
    single_flight_training: bool = True
    fetch_workers: int = Field(
        default=DEFAULT_FETCH_WORKERS,
        ge=1,
        description="Threads for analytics reads that run alongside the catalog read",
    )

    catalog_csv: Optional[str] = None
    analytics_store: Optional[str] = None
    api_tokens: Dict[str, str] = Field(
        default_factory=dict,
        description="Bearer token to user id mapping",
    )

    log_level: str = "INFO"

    n_components: int = Field(default=20, ge=1)
    n_iter: int = Field(default=5, ge=1)
    random_state: int = 42

    @field_validator("staleness_window_hours")
    @classmethod
    def _positive_window(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("staleness_window_hours must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def staleness_window(self) -> timedelta:
        return timedelta(hours=self.staleness_window_hours)


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    settings = Settings()
    logger.debug(
        "Settings loaded",
        extra={
            "staleness_window_hours": settings.staleness_window_hours,
            "single_flight_training": settings.single_flight_training,
        },
    )
    return settings
