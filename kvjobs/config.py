"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Key-value store. Without a URL the in-memory store is used.
    redis_url: str | None = None
    redis_socket_timeout_seconds: float = 5.0

    # Job queue
    queue_key: str = "job_queue"

    # Worker Configuration
    worker_id: str | None = None
    worker_poll_interval_seconds: float = 1.0

    # Rate Limiting
    rate_limit_requests: int = 50
    rate_limit_window_seconds: int = 3600

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "kvjobs"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
