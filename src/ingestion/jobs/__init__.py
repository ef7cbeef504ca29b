"""Jobs module for the ingestion service."""

from src.ingestion.jobs.ingestion_job import (
    TimeWindow,
    split_into_chunks,
    window_parameters,
    CancellationToken,
    IngestionPipeline,
    create_pipeline,
)
from src.ingestion.jobs.scheduler import (
    CollectionScheduler,
    create_scheduler,
)

__all__ = [
    "TimeWindow",
    "split_into_chunks",
    "window_parameters",
    "CancellationToken",
    "IngestionPipeline",
    "create_pipeline",
    "CollectionScheduler",
    "create_scheduler",
]
