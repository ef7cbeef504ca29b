"""Configuration module for the flight-schedule service."""

from src.ingestion.config.config import (
    Settings,
    AeroDataBoxSettings,
    StoreSettings,
    DatabaseSettings,
    S3Settings,
    PipelineSettings,
    CacheSettings,
    SchedulerSettings,
    LoggingSettings,
    get_settings,
    settings,
)

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
