"""
Flight schedule service.

The collaborator-facing interface: accepts collection requests, runs them
in the background, reports their progress and answers schedule queries.
All dependencies are injected; ``create_service()`` wires the defaults.
"""

from datetime import datetime

from src.utils import logger
from src.utils.exceptions import RunNotFoundError, RunOrchestrationError, ValidationError
from src.ingestion.airports import DEPARTURE_AIRPORTS
from src.ingestion.cache import QueryCache
from src.ingestion.db import (
    CollectionRequest,
    CollectionRequestRepository,
    FlightSchedule,
    ShardedStore,
    create_repository,
    create_store,
)
from src.ingestion.jobs import (
    CancellationToken,
    CollectionScheduler,
    IngestionPipeline,
    create_scheduler,
)


def _parse_date(value: str | datetime, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r} (expected YYYY-MM-DD or YYYY-MM-DDTHH:MM)")


def _validate_route(route: str) -> str:
    parts = (route or "").upper().split("-")
    if len(parts) != 2 or not all(parts):
        raise ValidationError(f"Invalid route: {route!r} (expected DEP-ARR, e.g. ICN-CEB)")
    return "-".join(parts)


def _validate_date(date: str) -> str:
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {date!r} (expected YYYY-MM-DD)")
    return date


class FlightScheduleService:
    """
    Facade over collection runs and schedule queries.

    Handles:
    - Validating and scheduling collection requests
    - Run status and history
    - Day and month schedule queries (month queries cached)
    - Cancelling runs
    """

    def __init__(
        self,
        store: ShardedStore | None = None,
        repository: CollectionRequestRepository | None = None,
        pipeline: IngestionPipeline | None = None,
        scheduler: CollectionScheduler | None = None,
        cache: QueryCache | None = None,
    ):
        self.store = store or create_store()
        self.repository = repository or create_repository()
        self.pipeline = pipeline or IngestionPipeline(store=self.store, repository=self.repository)
        self.scheduler = scheduler or create_scheduler()
        self.cache = cache if cache is not None else QueryCache()

    # -- collection runs --------------------------------------------------

    def request_collection(
        self,
        airport_code: str,
        start_date: str | datetime,
        end_date: str | datetime,
    ) -> str:
        """
        Accept a collection request and start it in the background.

        Args:
            airport_code: Departure airport IATA code
            start_date: Range start, ``YYYY-MM-DD[THH:MM]`` (airport local time)
            end_date: Range end, exclusive

        Returns:
            The run id

        Raises:
            ValidationError: Unknown airport, bad date format, or start >= end
        """
        iata = (airport_code or "").strip().upper()
        if iata not in DEPARTURE_AIRPORTS:
            raise ValidationError(f"Unsupported departure airport: {airport_code!r}")

        start = _parse_date(start_date, "start_date")
        end = _parse_date(end_date, "end_date")
        if start >= end:
            raise ValidationError(f"start_date must be before end_date ({start} >= {end})")

        request = self.repository.create_request(
            departure_airport=DEPARTURE_AIRPORTS[iata],
            departure_iata=iata,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )

        self.scheduler.submit(
            request.id,
            lambda token: self._execute(request.id, iata, start, end, token),
        )

        logger.info(f"Accepted collection request {request.id} for {iata} ({start} to {end})")
        return request.id

    def _execute(
        self,
        request_id: str,
        departure_iata: str,
        start: datetime,
        end: datetime,
        token: CancellationToken,
    ) -> CollectionRequest | None:
        try:
            result = self.pipeline.run(request_id, departure_iata, start, end, cancel_token=token)
        except RunOrchestrationError as e:
            logger.error(f"Collection run {request_id} aborted: {e}")
            return None

        if result.stored_flights:
            self.cache.invalidate()
        return result

    def get_run_status(self, run_id: str) -> CollectionRequest:
        """
        Raises:
            RunNotFoundError: If the run id is unknown
        """
        request = self.repository.get_by_id(run_id)
        if request is None:
            raise RunNotFoundError(run_id)
        return request

    def list_collection_requests(self, limit: int = 50) -> list[CollectionRequest]:
        """Most recent collection requests, newest first."""
        if limit < 1:
            raise ValidationError("limit must be positive")
        return self.repository.get_latest(limit)

    def cancel_collection(self, run_id: str) -> bool:
        """
        Request cancellation of a run.

        Returns:
            True if the run was pending or running in this process

        Raises:
            RunNotFoundError: If the run id is unknown
        """
        request = self.get_run_status(run_id)
        if request.status.is_terminal:
            logger.info(f"Run {run_id} already {request.status.value}, nothing to cancel")
            return False
        return self.scheduler.cancel(run_id)

    # -- queries ------------------------------------------------------------

    def get_flights(self, route: str, date: str) -> list[FlightSchedule]:
        """Schedules of one route departing on ``date``, sorted by departure time."""
        return self.store.get_by_route_and_date(_validate_route(route), _validate_date(date))

    def get_flights_for_month(self, route: str, year: int, month: int) -> list[FlightSchedule]:
        """
        Schedules of one route for a calendar month, served through the cache.

        Raises:
            ValidationError: If month is not 1..12
        """
        route = _validate_route(route)
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month} (expected 1..12)")
        if not 1 <= year <= 9999:
            raise ValidationError(f"Invalid year: {year}")

        cached = self.cache.get(route, year, month)
        if cached is not None:
            logger.debug(f"Cache hit for {route} {year}-{month:02d}")
            return cached

        flights = self.store.get_by_route_and_month(route, year, month)
        self.cache.put(route, year, month, flights)
        return flights

    def list_routes(self) -> list[str]:
        """Stored routes, sorted by departure then arrival code."""
        return self.store.list_routes()

    def close(self, wait: bool = True) -> None:
        """Stop background runs (by default waiting for every submitted run to finish)."""
        self.scheduler.shutdown(wait=wait)


def create_service() -> FlightScheduleService:
    """Create a service with default components."""
    return FlightScheduleService()


__all__ = ["FlightScheduleService", "create_service"]
