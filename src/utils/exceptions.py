"""
Custom exceptions for the flight-schedule services.

Provides a hierarchy of exceptions for different error scenarios:
- API errors (AeroDataBox flight-data API)
- Parse errors (provider time strings)
- Storage errors (sharded schedule store)
- Database errors (collection request records)
- Orchestration errors (collection runs)
"""


class FlightServiceError(Exception):
    """Base exception for all flight service errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


# =============================================================================
# API Exceptions
# =============================================================================

class APIError(FlightServiceError):
    """Base exception for API-related errors."""
    pass


class UpstreamError(APIError):
    """Non-2xx response or transport failure for a single upstream window."""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class RateLimitError(UpstreamError):
    """Error when API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: int | None = None,
        response_body: str | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=429, response_body=response_body)


class APIConnectionError(UpstreamError):
    """Error when unable to connect to the API."""
    pass


class APITimeoutError(UpstreamError):
    """Error when API request times out."""

    def __init__(self, message: str, timeout: float | None = None):
        self.timeout = timeout
        super().__init__(message)


# =============================================================================
# Parse Exceptions
# =============================================================================

class ParseError(FlightServiceError):
    """A provider time string could not be parsed."""

    def __init__(self, value: str | None, reason: str = "unparseable time string"):
        self.value = value
        super().__init__(f"{reason}: {value!r}")


# =============================================================================
# Storage Exceptions
# =============================================================================

class StorageError(FlightServiceError):
    """Base exception for storage-related errors."""
    pass


class StoreWriteError(StorageError):
    """Error when committing a batch of schedule documents fails."""

    def __init__(self, message: str, path: str | None = None, batch_size: int | None = None):
        self.path = path
        self.batch_size = batch_size
        super().__init__(message)


class StoreReadError(StorageError):
    """Error when reading schedule documents fails."""
    pass


# =============================================================================
# Database Exceptions
# =============================================================================

class DatabaseError(FlightServiceError):
    """Base exception for database-related errors."""
    pass


class CollectionRequestError(DatabaseError):
    """Error when creating or querying collection requests."""
    pass


class InvalidStatusTransition(CollectionRequestError):
    """A collection request status may only move forward."""

    def __init__(self, request_id: str, current: str, target: str):
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(f"Request {request_id}: cannot move from {current} to {target}")


class RunNotFoundError(CollectionRequestError):
    """No collection request exists for the given id."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Collection request not found: {request_id}")


# =============================================================================
# Orchestration Exceptions
# =============================================================================

class RunOrchestrationError(FlightServiceError):
    """Unhandled failure outside per-chunk processing; the run is marked failed."""

    def __init__(self, message: str, request_id: str | None = None):
        self.request_id = request_id
        super().__init__(message)


class ValidationError(FlightServiceError):
    """Invalid input to the collaborator interface."""
    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(FlightServiceError):
    """Error with service configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Error when required configuration is missing."""

    def __init__(self, config_key: str):
        self.config_key = config_key
        super().__init__(f"Missing required configuration: {config_key}")


# Export all exceptions
__all__ = [
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
