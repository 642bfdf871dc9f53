"""Application configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults for development.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========== Key-value store client ==========
    kv_store_url: str = Field(
        default="http://localhost:8000/api/redis",
        description="Base URL of the key-value HTTP route",
    )
    kv_request_timeout: float = Field(default=5.0, gt=0, le=60)
    kv_connect_timeout: float = Field(default=2.0, gt=0, le=30)

    # ========== Key-value backend (Upstash Redis) ==========
    upstash_redis_rest_url: str = Field(default="", description="Upstash Redis REST URL")
    upstash_redis_rest_token: str = Field(default="", description="Upstash Redis REST Token")

    # ========== Local fallback store (SQLite) ==========
    fallback_database_url: str = Field(
        default="sqlite+aiosqlite:///./kyartu_fallback.db",
        description="Async SQLAlchemy URL of the local fallback store",
    )
    fallback_enabled: bool = Field(default=True, description="Mirror cache writes locally")
    fallback_purge_interval: float = Field(
        default=3600.0, gt=0, description="Seconds between purges of expired local copies"
    )
    db_echo: bool = Field(default=False, description="Echo SQL queries")

    # ========== CORS ==========
    cors_origins_str: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma-separated CORS origins",
    )

    # ========== Application ==========
    app_name: str = "Kyartu Vzgo"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ========== Computed Properties ==========
    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @computed_field
    @property
    def redis_available(self) -> bool:
        """Check if Redis credentials are configured."""
        return bool(self.upstash_redis_rest_url and self.upstash_redis_rest_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
