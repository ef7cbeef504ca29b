"""
Flight schedule ingestion and query service.

This module provides:
- AeroDataBox API client for airport departures/arrivals
- Normalization of provider records into route/date sharded schedules
- Sharded schedule store (SQLite or S3)
- SQLite repository tracking collection runs
- Background collection runs and a cached month query

Quick start:
    from src.ingestion import create_service
    service = create_service()
    run_id = service.request_collection("ICN", "2025-08-01", "2025-08-03")
    service.get_run_status(run_id)

Configuration (environment variables):
    AERODATABOX_API_KEY: RapidAPI key (required for collection)
    STORE_BACKEND: "sqlite" (default) or "s3"
    DB_PATH: SQLite database file
    PIPELINE_CHUNK_DELAY_SECONDS: Pause between upstream calls (default: 1)
    CACHE_TTL_SECONDS: Month query cache TTL (default: 300)
"""

from src.ingestion.config import settings, get_settings
from src.ingestion.airports import DEPARTURE_AIRPORTS, PHILIPPINE_AIRPORTS
from src.ingestion.components import (
    AeroDataBoxClient,
    create_client,
    ScheduleNormalizer,
    RelevanceFilter,
)
from src.ingestion.db import (
    CollectionStatus,
    CollectionRequest,
    FlightSchedule,
    CollectionRequestRepository,
    create_repository,
    ShardedStore,
    create_store,
)
from src.ingestion.cache import QueryCache
from src.ingestion.jobs import (
    CancellationToken,
    IngestionPipeline,
    CollectionScheduler,
    create_scheduler,
)
from src.ingestion.service import FlightScheduleService, create_service

__all__ = [
    # Config
    "settings",
    "get_settings",
    "DEPARTURE_AIRPORTS",
    "PHILIPPINE_AIRPORTS",
    # Components
    "AeroDataBoxClient",
    "create_client",
    "ScheduleNormalizer",
    "RelevanceFilter",
    # Database
    "CollectionStatus",
    "CollectionRequest",
    "FlightSchedule",
    "CollectionRequestRepository",
    "create_repository",
    "ShardedStore",
    "create_store",
    # Cache
    "QueryCache",
    # Jobs
    "CancellationToken",
    "IngestionPipeline",
    "CollectionScheduler",
    "create_scheduler",
    # Service
    "FlightScheduleService",
    "create_service",
]
