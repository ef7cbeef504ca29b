"""
Collection run pipeline that fetches airport schedules and stores them.

This is the main pipeline that, for one collection request:
1. Splits the requested range into windows of at most 12 hours
2. Fetches departures and arrivals of the airport for each window
3. Keeps flights to/from allow-listed airports and normalizes them
4. Stores new schedules in the sharded store
5. Records progress on the collection request

A failing window is logged and skipped; only failures outside the
per-window handling fail the whole run.
"""

import math
import threading
import time
import traceback
from datetime import datetime, timedelta
from typing import Callable, NamedTuple

from src.utils import logger
from src.utils.exceptions import (
    FlightServiceError,
    UpstreamError,
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    StoreWriteError,
    StorageError,
    DatabaseError,
    ConfigurationError,
    RunOrchestrationError,
)
from src.ingestion.config import settings
from src.ingestion.components.client import AeroDataBoxClient, create_client
from src.ingestion.components.normalizer import ScheduleNormalizer
from src.ingestion.components.relevance import RelevanceFilter
from src.ingestion.components.time_normalizer import fallback_count
from src.ingestion.db import (
    CollectionRequest,
    CollectionRequestRepository,
    CollectionStatus,
    Leg,
    ShardedStore,
    create_repository,
    create_store,
    month_dates,
)
from src.notifications import CollectionNotifier, get_notifier


CANCELLED_MESSAGE = "cancelled"

# Per-day collection slots (local time)
DAY_SLOTS = (((0, 0), (12, 0)), ((12, 0), (23, 59)))


class TimeWindow(NamedTuple):
    """Half-open local-time window [start, end)."""
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return round((self.end - self.start).total_seconds() / 60)

    @property
    def midpoint(self) -> datetime:
        return self.start + (self.end - self.start) / 2


def split_into_chunks(start: datetime, end: datetime, max_hours: int = 12) -> list[TimeWindow]:
    """
    Split [start, end) into contiguous windows of at most ``max_hours``.

    The last window may be shorter. Returns an empty list when start >= end.
    """
    if max_hours <= 0:
        raise ValueError("max_hours must be positive")

    step = timedelta(hours=max_hours)
    chunks = []
    current = start
    while current < end:
        chunk_end = min(current + step, end)
        chunks.append(TimeWindow(current, chunk_end))
        current = chunk_end
    return chunks


def window_parameters(chunk: TimeWindow, now: datetime, max_minutes: int = 720) -> tuple[int, int]:
    """
    Relative query parameters for a chunk.

    The offset is measured from ``now`` truncated to the minute and rounded
    down, so a client anchored on the same truncated ``now`` rebuilds the
    chunk exactly for minute-aligned chunks.

    Returns:
        Tuple of (offset_minutes from now to the chunk midpoint, duration_minutes)
    """
    anchor = now.replace(second=0, microsecond=0)
    offset_minutes = math.floor((chunk.midpoint - anchor).total_seconds() / 60)
    duration_minutes = min(chunk.minutes, max_minutes)
    return offset_minutes, duration_minutes


class CancellationToken:
    """Cooperative cancellation flag checked between windows."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class IngestionPipeline:
    """
    Orchestrates one collection run.

    Workflow:
    1. Mark the request in_progress
    2. For each window: fetch, filter, normalize, store, update counters
    3. Mark the request completed (or failed on cancellation or an
       orchestration failure)

    Collaborators are injected; defaults are built from settings.
    """

    def __init__(
        self,
        client: AeroDataBoxClient | None = None,
        store: ShardedStore | None = None,
        repository: CollectionRequestRepository | None = None,
        normalizer: ScheduleNormalizer | None = None,
        relevance: RelevanceFilter | None = None,
        notifier: CollectionNotifier | None = None,
        chunk_hours: int | None = None,
        chunk_delay_seconds: float | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the pipeline.

        Raises:
            ConfigurationError: If components cannot be initialized
        """
        try:
            self.client = client or create_client()
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize AeroDataBox client: {e}")

        try:
            self.store = store or create_store()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize schedule store: {e}")

        try:
            self.repository = repository or create_repository()
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize database repository: {e}")

        self.normalizer = normalizer or ScheduleNormalizer()
        self.relevance = relevance or RelevanceFilter()
        self.notifier = notifier or get_notifier()
        self.chunk_hours = chunk_hours or settings.pipeline.chunk_hours
        self.chunk_delay_seconds = (
            chunk_delay_seconds if chunk_delay_seconds is not None
            else settings.pipeline.chunk_delay_seconds
        )
        self._sleep = sleep_fn
        self._now = now_fn

        logger.info("IngestionPipeline initialized")

    def _categorize_error(self, error: Exception) -> tuple[str, str]:
        """
        Categorize an error for logging and storage.

        Returns:
            Tuple of (error_category, error_message)
        """
        if isinstance(error, RateLimitError):
            category = "RATE_LIMIT"
            message = f"API rate limit exceeded. Retry after {error.retry_after}s"
        elif isinstance(error, APITimeoutError):
            category = "API_TIMEOUT"
            message = f"API request timed out after {error.timeout}s"
        elif isinstance(error, APIConnectionError):
            category = "API_CONNECTION"
            message = f"Failed to connect to AeroDataBox API: {error}"
        elif isinstance(error, UpstreamError):
            category = "API_ERROR"
            message = f"AeroDataBox API error (HTTP {error.status_code}): {error.message}"
        elif isinstance(error, StoreWriteError):
            category = "STORE_WRITE"
            message = f"Failed to write batch of {error.batch_size} at {error.path}: {error.message}"
        elif isinstance(error, StorageError):
            category = "STORE"
            message = f"Schedule store error: {error}"
        elif isinstance(error, DatabaseError):
            category = "DATABASE"
            message = f"Database error: {error}"
        elif isinstance(error, ConfigurationError):
            category = "CONFIG"
            message = f"Configuration error: {error}"
        elif isinstance(error, FlightServiceError):
            category = "SERVICE"
            message = f"Service error: {error}"
        else:
            category = "UNEXPECTED"
            message = f"Unexpected error ({type(error).__name__}): {error}"

        return category, message

    def _process_response(self, response: dict, departure_iata: str, date: str) -> tuple[int, int]:
        """
        Filter, normalize and store both legs of one upstream response.

        Returns:
            Tuple of (relevant schedules, newly written schedules)
        """
        schedules = []
        for leg, key in ((Leg.DEPARTURE, "departures"), (Leg.ARRIVAL, "arrivals")):
            raws = response.get(key) or []
            relevant = self.relevance.keep_relevant(raws, leg)
            schedules.extend(self.normalizer.normalize_all(relevant, date, leg, departure_iata))

        if not schedules:
            return 0, 0

        written = self.store.batch_put(schedules)
        return len(schedules), written

    def _mark_failed(self, request_id: str, departure_iata: str, category: str, message: str) -> CollectionRequest:
        try:
            self.notifier.on_failure(
                request_id=request_id,
                error_category=category,
                error_message=message,
                departure_iata=departure_iata,
            )
        except Exception as notify_error:
            logger.warning(f"Failed to send failure notification: {notify_error}")

        error_message = message if category == "CANCELLED" else f"[{category}] {message}"
        return self.repository.update_request(
            request_id,
            status=CollectionStatus.FAILED,
            error_message=error_message,
        )

    def run(
        self,
        request_id: str,
        departure_iata: str,
        start: datetime,
        end: datetime,
        cancel_token: CancellationToken | None = None,
    ) -> CollectionRequest:
        """
        Run one collection request.

        Args:
            request_id: Id of an existing pending request
            departure_iata: Monitored airport
            start: Range start (airport local time)
            end: Range end (airport local time)
            cancel_token: Checked before every window

        Returns:
            The final CollectionRequest (completed, or failed when cancelled)

        Raises:
            RunOrchestrationError: On failures outside per-window handling;
                the request is marked failed first
        """
        started = self._now()
        run_log = logger.bind(request_id=request_id, airport=departure_iata)
        fallbacks_before = fallback_count()

        try:
            chunks = split_into_chunks(start, end, self.chunk_hours)
            request = self.repository.update_request(
                request_id,
                status=CollectionStatus.IN_PROGRESS,
                total_flights=len(chunks),
            )
            run_log.info(f"Collecting {departure_iata} from {start} to {end} in {len(chunks)} windows")

            collected = request.collected_flights
            stored = request.stored_flights
            relevant_total = 0
            failed_chunks = 0

            for index, chunk in enumerate(chunks):
                if cancel_token is not None and cancel_token.cancelled:
                    run_log.warning(f"Run cancelled after {index}/{len(chunks)} windows")
                    return self._mark_failed(request_id, departure_iata, "CANCELLED", CANCELLED_MESSAGE)

                if index > 0 and self.chunk_delay_seconds > 0:
                    self._sleep(self.chunk_delay_seconds)

                try:
                    now = self._now()
                    offset_minutes, duration_minutes = window_parameters(
                        chunk, now, settings.aerodatabox.max_window_minutes
                    )
                    run_log.debug(
                        f"Window {index + 1}/{len(chunks)} {chunk.start} - {chunk.end}: "
                        f"offset={offset_minutes}m duration={duration_minutes}m"
                    )
                    response = self.client.fetch_window(
                        departure_iata, offset_minutes, duration_minutes, now=now
                    )
                    relevant, written = self._process_response(
                        response, departure_iata, chunk.start.strftime("%Y-%m-%d")
                    )
                except Exception as e:
                    failed_chunks += 1
                    category, message = self._categorize_error(e)
                    run_log.error(f"Window {chunk.start} - {chunk.end} FAILED [{category}]: {message}")
                    run_log.debug(f"Full traceback:\n{traceback.format_exc()}")
                    continue

                relevant_total += relevant
                collected += 1
                stored += written
                request = self.repository.update_request(
                    request_id,
                    collected_flights=collected,
                    stored_flights=stored,
                )

            request = self.repository.update_request(request_id, status=CollectionStatus.COMPLETED)

        except Exception as e:
            category, message = self._categorize_error(e)
            run_log.error(f"Run FAILED [{category}]: {message}")
            run_log.debug(f"Full traceback:\n{traceback.format_exc()}")
            try:
                self._mark_failed(request_id, departure_iata, category, message)
            except Exception as update_error:
                run_log.exception(f"CRITICAL: Failed to mark request as failed: {update_error}")
            raise RunOrchestrationError(f"[{category}] {message}", request_id=request_id) from e

        fallbacks = fallback_count() - fallbacks_before
        if fallbacks:
            run_log.warning(f"{fallbacks} time values fell back to the current time during this run")

        duration = (self._now() - started).total_seconds()
        run_log.info(
            f"Run complete: {collected}/{len(chunks)} windows collected ({failed_chunks} failed), "
            f"{stored} new of {relevant_total} relevant schedules, {duration:.1f}s"
        )

        try:
            self.notifier.on_success(request, duration_seconds=duration)
        except Exception as notify_error:
            logger.warning(f"Failed to send success notification: {notify_error}")

        return request

    def collect_day(self, departure_iata: str, date: str) -> int:
        """
        Collect one calendar day in two fixed local-time slots.

        Args:
            departure_iata: Monitored airport
            date: ``YYYY-MM-DD``

        Returns:
            Number of schedules newly written
        """
        day = datetime.strptime(date, "%Y-%m-%d")
        written_total = 0

        for index, ((start_h, start_m), (end_h, end_m)) in enumerate(DAY_SLOTS):
            if index > 0 and self.chunk_delay_seconds > 0:
                self._sleep(self.chunk_delay_seconds)

            slot_start = day.replace(hour=start_h, minute=start_m)
            slot_end = day.replace(hour=end_h, minute=end_m)
            try:
                response = self.client.fetch_range(departure_iata, slot_start, slot_end)
                _, written = self._process_response(response, departure_iata, date)
                written_total += written
            except Exception as e:
                category, message = self._categorize_error(e)
                logger.error(f"Slot {slot_start:%H:%M}-{slot_end:%H:%M} of {date} FAILED [{category}]: {message}")

        logger.info(f"Collected {written_total} new schedules for {departure_iata} on {date}")
        return written_total

    def collect_month(
        self,
        departure_iata: str,
        year: int,
        month: int,
        cancel_token: CancellationToken | None = None,
    ) -> int:
        """
        Collect every day of a month.

        Returns:
            Number of schedules newly written
        """
        written_total = 0
        for index, date in enumerate(month_dates(year, month)):
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning(f"Month collection for {departure_iata} cancelled at {date}")
                break
            if index > 0 and self.chunk_delay_seconds > 0:
                self._sleep(self.chunk_delay_seconds)
            written_total += self.collect_day(departure_iata, date)
        return written_total


def create_pipeline() -> IngestionPipeline:
    """Create a pipeline with default components."""
    return IngestionPipeline()


__all__ = [
    "TimeWindow",
    "split_into_chunks",
    "window_parameters",
    "CancellationToken",
    "IngestionPipeline",
    "create_pipeline",
    "CANCELLED_MESSAGE",
]
