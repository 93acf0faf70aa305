"""Application configuration loaded from environment variables.

Engine tuning (cycle length bounds, smoothing weight, horizons) lives in
``cyclesync/menstrual/cycle_config.yaml``; only its location is set here.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deployment settings, read from ``CYCLESYNC_*`` variables or ``.env``."""

    app_name: str = "CycleSync"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # asyncpg pool
    database_url: str = "postgresql://localhost:5432/cyclesync"
    db_pool_min_size: int = 2
    db_pool_max_size: int = 20
    db_command_timeout: float = 30.0

    clerk_jwks_url: str = "https://api.clerk.com/v1/jwks"

    # Outbound push; an empty URL keeps notifications in-app only
    push_gateway_url: str = ""
    push_timeout_seconds: float = 5.0

    # None uses the bundled cycle_config.yaml
    cycle_config_path: str | None = None

    rate_limit_per_minute: int = 60
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_prefix="CYCLESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
