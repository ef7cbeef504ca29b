"""Components module for the ingestion service."""

from src.ingestion.components.client import AeroDataBoxClient, create_client
from src.ingestion.components.normalizer import ScheduleNormalizer, map_status
from src.ingestion.components.relevance import RelevanceFilter
from src.ingestion.components.time_normalizer import (
    parse_local,
    format_local,
    format_date,
    fallback_count,
)

__all__ = [
    "AeroDataBoxClient",
    "create_client",
    "ScheduleNormalizer",
    "map_status",
    "RelevanceFilter",
    "parse_local",
    "format_local",
    "format_date",
    "fallback_count",
]
