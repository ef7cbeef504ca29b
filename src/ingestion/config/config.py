"""
Configuration management for the flight-schedule service.

Loads settings from environment variables and an optional .env file.
"""

from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before settings are initialized
load_dotenv()


class AeroDataBoxSettings(BaseSettings):
    """AeroDataBox (RapidAPI) flight-data API configuration."""

    base_url: str = Field(default="https://aerodatabox.p.rapidapi.com")
    host: str = Field(default="aerodatabox.p.rapidapi.com")
    api_key: str | None = Field(default=None)
    timeout_seconds: float = Field(default=30.0)
    # The provider rejects windows longer than 12 hours
    max_window_minutes: int = Field(default=720)

    model_config = SettingsConfigDict(env_prefix="AERODATABOX_")


class StoreSettings(BaseSettings):
    """Sharded schedule store configuration."""

    # "sqlite" or "s3"
    backend: str = Field(default="sqlite")
    # Ceiling on writes per atomic commit
    batch_size: int = Field(default=500)
    # Concurrent day reads for a month query
    month_read_workers: int = Field(default=31)

    model_config = SettingsConfigDict(env_prefix="STORE_")


class DatabaseSettings(BaseSettings):
    """SQLite database configuration."""

    path: str = Field(default="data/flight_schedules.db")

    model_config = SettingsConfigDict(env_prefix="DB_")

    @property
    def full_path(self) -> Path:
        """Get the full path to the database file."""
        return Path(self.path)


class S3Settings(BaseSettings):
    """AWS S3 configuration for the S3 store backend."""

    bucket_name: str = Field(default="flight-schedules")
    prefix: str = Field(default="flight_schedules")
    region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    access_key_id: str | None = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    secret_access_key: str | None = Field(default=None, validation_alias="AWS_SECRET_ACCESS_KEY")
    # For local development with LocalStack or MinIO
    endpoint_url: str | None = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="AWS_S3_",
        populate_by_name=True,
    )


class PipelineSettings(BaseSettings):
    """Collection run configuration."""

    chunk_hours: int = Field(default=12)
    # Pause between upstream calls (rate limit)
    chunk_delay_seconds: float = Field(default=1.0)
    # Destination allow-list; empty means the built-in Philippine airports
    relevant_airports: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")


class CacheSettings(BaseSettings):
    """Month query cache configuration."""

    ttl_seconds: float = Field(default=300.0)

    model_config = SettingsConfigDict(env_prefix="CACHE_")


class SchedulerSettings(BaseSettings):
    """Background run scheduler configuration."""

    # Runs share one upstream quota, so one worker by default
    max_workers: int = Field(default=1)

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")
    log_file: str = Field(default="flight_schedules.log")
    rotation: str = Field(default="10 MB")
    retention: str = Field(default="7 days")

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""

    aerodatabox: AeroDataBoxSettings = Field(default_factory=AeroDataBoxSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    s3: S3Settings = Field(default_factory=S3Settings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Environment name (development, staging, production)
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The application settings
    """
    return Settings()


settings = get_settings()

__all__ = [
    "Settings",
    "AeroDataBoxSettings",
    "StoreSettings",
    "DatabaseSettings",
    "S3Settings",
    "PipelineSettings",
    "CacheSettings",
    "SchedulerSettings",
    "LoggingSettings",
    "get_settings",
    "settings",
]
