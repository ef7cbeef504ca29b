"""
Utility modules for the flight-schedule services.

Provides:
    - logger: Loguru-based logging with stdout and file output
    - exceptions: Custom exception classes for error handling
"""

from src.utils.logger import logger, setup_logger
from src.utils.exceptions import (
    # Base
    FlightServiceError,
    # API
    APIError,
    UpstreamError,
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    # Parsing
    ParseError,
    # Storage
    StorageError,
    StoreWriteError,
    StoreReadError,
    # Database
    DatabaseError,
    CollectionRequestError,
    InvalidStatusTransition,
    RunNotFoundError,
    # Orchestration
    RunOrchestrationError,
    ValidationError,
    # Configuration
    ConfigurationError,
    MissingConfigError,
)

__all__ = [
    # Logger
    "logger",
    "setup_logger",
    # Base
    "FlightServiceError",
    # API
    "APIError",
    "UpstreamError",
    "RateLimitError",
    "APIConnectionError",
    "APITimeoutError",
    # Parsing
    "ParseError",
    # Storage
    "StorageError",
    "StoreWriteError",
    "StoreReadError",
    # Database
    "DatabaseError",
    "CollectionRequestError",
    "InvalidStatusTransition",
    "RunNotFoundError",
    # Orchestration
    "RunOrchestrationError",
    "ValidationError",
    # Configuration
    "ConfigurationError",
    "MissingConfigError",
]
