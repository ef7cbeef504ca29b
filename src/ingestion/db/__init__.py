"""Database module for the flight-schedule service."""

from src.ingestion.db.models import (
    Leg,
    FlightStatus,
    CollectionStatus,
    FlightSchedule,
    CollectionRequest,
    route_key,
    schedule_path,
    split_path,
)
from src.ingestion.db.repository import (
    CollectionRequestRepository,
    create_repository,
)
from src.ingestion.db.store import (
    ShardedStore,
    SQLiteShardedStore,
    create_store,
    month_dates,
)

__all__ = [
    "Leg",
    "FlightStatus",
    "CollectionStatus",
    "FlightSchedule",
    "CollectionRequest",
    "route_key",
    "schedule_path",
    "split_path",
    "CollectionRequestRepository",
    "create_repository",
    "ShardedStore",
    "SQLiteShardedStore",
    "create_store",
    "month_dates",
]
