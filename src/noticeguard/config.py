"""
Application settings and configuration.

Environment-based configuration loading with the NOTICEGUARD_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = "sqlite:///noticeguard.db"
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 1800

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 10

    # Cache / option store backend: memory or redis
    cache_backend: str = "memory"
    allowlist_cache_ttl: int = 3600

    # Decision log
    log_retention_days: int = 30

    # Identity
    hash_salt: str = "noticeguard"
    elevated_capability: str = "noticeguard_full_access"

    # Environment (production, staging, development, local)
    environment: str = "production"

    # Plugin lifecycle
    plugin_dir: str = "plugins"
    plugin_config_path: str | None = None

    # API
    api_prefix: str = "/api/v1"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "NOTICEGUARD_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
