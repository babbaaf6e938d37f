"""Configuration management for the RangeScope server."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RANGESCOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8480
    debug: bool = False

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./rangescope.db"

    # Topology store
    store_backend: Literal["sql", "memory"] = "sql"
    store_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
