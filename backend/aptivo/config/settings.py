"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from aptivo.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    threshold = settings.STREAK_DEFAULT_THRESHOLD
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    APP_NAME: str = "Aptivo"
    DEBUG: bool = False

    # PostgreSQL (managed service behind the remote backend)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "aptivo"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "aptivo"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for schema management scripts."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis (login session cache)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Remote auth service. Both values must be set to select the remote
    # backend; otherwise the in-process mock backend is used.
    REMOTE_AUTH_URL: str = ""
    REMOTE_AUTH_API_KEY: str = ""
    REMOTE_AUTH_TIMEOUT_SECONDS: float = 10.0

    @property
    def remote_backend_enabled(self) -> bool:
        """True when the remote auth/profile service is configured."""
        return bool(self.REMOTE_AUTH_URL and self.REMOTE_AUTH_API_KEY)

    # Mock backend snapshot (empty = in-memory only)
    MOCK_STORE_PATH: str = ""

    # Streaks
    STREAK_DEFAULT_THRESHOLD: int = 5
    DEFAULT_TIMEZONE: str = "UTC"

    # Analytics
    ANALYTICS_TREND_DAYS: int = 7
    ANALYTICS_RECENT_LIMIT: int = 10
    STRUGGLING_TOPIC_ACCURACY: int = 60
    STRUGGLING_TOPIC_LIMIT: int = 5
    UNKNOWN_TOPIC_LABEL: str = "Unknown"
    GENERAL_TOPIC_LABEL: str = "General"

    # Practice sessions
    SESSION_TICK_SECONDS: float = 1.0
    SESSION_IDLE_TIMEOUT_SECONDS: float = 1800.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
