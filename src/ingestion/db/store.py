"""
Route/date sharded schedule store.

Schedules are addressed by the composite key (route, date, id), which is
also rendered as the document path ``routes/{route}/{date}/flights/{id}``.
The date is always the departure date, so a journey is filed under the day
it left the ground.

ShardedStore holds the backend-independent logic (dedup, batching, month
fan-out); SQLiteShardedStore persists to a local SQLite table. See
s3_store.py for the S3 backend.
"""

import calendar
import json
import sqlite3
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from src.utils import logger
from src.utils.exceptions import ConfigurationError, StoreReadError, StoreWriteError
from src.ingestion.config import settings
from src.ingestion.db.models import FlightSchedule, split_path


def _sort_by_departure(flights: Iterable[FlightSchedule]) -> list[FlightSchedule]:
    return sorted(flights, key=lambda f: (f.departure_time, f.id))


def month_dates(year: int, month: int) -> list[str]:
    """Every calendar day of a month as YYYY-MM-DD."""
    days = calendar.monthrange(year, month)[1]
    return [f"{year:04d}-{month:02d}-{day:02d}" for day in range(1, days + 1)]


class ShardedStore(ABC):
    """
    Base class for sharded schedule stores.

    Subclasses implement the primitive operations on one composite key or
    one shard; this class implements idempotent batched writes and the
    concurrent month read on top of them.
    """

    def __init__(self, batch_size: int | None = None, month_read_workers: int | None = None):
        self.batch_size = batch_size or settings.store.batch_size
        self.month_read_workers = month_read_workers or settings.store.month_read_workers
        self.commit_count = 0

    # -- primitives -----------------------------------------------------------

    @abstractmethod
    def _exists(self, route: str, date: str, schedule_id: str) -> bool:
        """Whether a document exists at the composite key."""

    @abstractmethod
    def _commit(self, records: list[FlightSchedule]) -> int:
        """
        Write one batch atomically where the backend allows it.

        Returns:
            Number of documents written

        Raises:
            StoreWriteError: If the batch could not be committed
        """

    @abstractmethod
    def _read_shard(self, route: str, date: str) -> list[FlightSchedule]:
        """All documents in one route/date shard, unordered."""

    @abstractmethod
    def list_routes(self) -> list[str]:
        """All route keys that hold at least one document."""

    # -- public API -----------------------------------------------------------

    def exists(self, path: str) -> bool:
        """Whether a schedule document exists at ``path``."""
        route, date, schedule_id = split_path(path)
        return self._exists(route, date, schedule_id)

    def batch_put(self, records: Iterable[FlightSchedule], max_batch_size: int | None = None) -> int:
        """
        Store new schedules in bounded batches, skipping existing ids.

        Records without both airport codes are rejected before any write.
        A batch is committed whenever it reaches ``max_batch_size`` and the
        remainder is committed at the end.

        Args:
            records: Normalized schedules
            max_batch_size: Ceiling on writes per commit (defaults to settings)

        Returns:
            Number of schedules newly written

        Raises:
            StoreWriteError: If a commit fails; batches committed before it stay
        """
        if max_batch_size is None:
            max_batch_size = self.batch_size
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be positive")

        now = datetime.now(timezone.utc)
        batch: list[FlightSchedule] = []
        seen: set[str] = set()
        written = 0
        skipped = 0

        for record in records:
            if not record.is_storable:
                logger.warning(
                    f"Rejecting {record.id}: invalid airport codes "
                    f"'{record.departure_iata}-{record.arrival_iata}'"
                )
                continue

            path = record.path
            if path in seen or self.exists(path):
                logger.debug(f"Schedule already stored: {record.flight_number} ({path})")
                skipped += 1
                continue

            seen.add(path)
            batch.append(record.stamped(now))

            if len(batch) >= max_batch_size:
                written += self._flush(batch)
                batch = []

        if batch:
            written += self._flush(batch)

        logger.info(f"Stored {written} schedules ({skipped} already present)")
        return written

    def _flush(self, batch: list[FlightSchedule]) -> int:
        count = self._commit(batch)
        self.commit_count += 1
        logger.debug(f"Batch committed: {count} schedules")
        return count

    def get_by_route_and_date(self, route: str, date: str) -> list[FlightSchedule]:
        """Schedules of one route departing on ``date``, sorted by departure time."""
        return _sort_by_departure(self._read_shard(route, date))

    def get_by_route_and_month(self, route: str, year: int, month: int) -> list[FlightSchedule]:
        """
        Schedules of one route for a whole month.

        Reads every day shard concurrently and merges them sorted by
        departure time.
        """
        dates = month_dates(year, month)
        workers = max(1, min(self.month_read_workers, len(dates)))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="month-read") as pool:
            days = list(pool.map(lambda d: self._read_shard(route, d), dates))

        flights = _sort_by_departure(f for day in days for f in day)
        logger.debug(f"Read {len(flights)} schedules for {route} {year}-{month:02d}")
        return flights

    def get_by_date(self, date: str) -> list[FlightSchedule]:
        """Schedules of every route departing on ``date``."""
        flights: list[FlightSchedule] = []
        for route in self.list_routes():
            flights.extend(self._read_shard(route, date))
        return _sort_by_departure(flights)

    def get_by_airline(self, airline_code: str, date: str) -> list[FlightSchedule]:
        """Schedules of one airline departing on ``date``, across routes."""
        return [f for f in self.get_by_date(date) if f.airline_code == airline_code]


# SQL statements
CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS flight_schedules (
    route TEXT NOT NULL,
    date TEXT NOT NULL,
    id TEXT NOT NULL,
    departure_time TEXT NOT NULL,
    airline_code TEXT NOT NULL DEFAULT '',
    document TEXT NOT NULL,
    PRIMARY KEY (route, date, id)
)
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_schedules_date ON flight_schedules(date);
"""

INSERT_SCHEDULE_SQL = """
INSERT OR IGNORE INTO flight_schedules (route, date, id, departure_time, airline_code, document)
VALUES (?, ?, ?, ?, ?, ?)
"""

EXISTS_SQL = "SELECT 1 FROM flight_schedules WHERE route = ? AND date = ? AND id = ?"

SELECT_SHARD_SQL = "SELECT document FROM flight_schedules WHERE route = ? AND date = ?"

SELECT_ROUTES_SQL = "SELECT DISTINCT route FROM flight_schedules"


class SQLiteShardedStore(ShardedStore):
    """
    Sharded store on a SQLite table with a (route, date, id) primary key.

    Each batch is one transaction, so a commit is all-or-nothing.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        batch_size: int | None = None,
        month_read_workers: int | None = None,
    ):
        super().__init__(batch_size=batch_size, month_read_workers=month_read_workers)
        self.db_path = Path(db_path) if db_path else settings.database.full_path
        self._ensure_database()

    def _ensure_database(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute(CREATE_TABLE_SQL)
            conn.executescript(CREATE_INDEX_SQL)
            conn.commit()

        logger.info(f"Schedule store initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        try:
            yield conn
        finally:
            conn.close()

    def _exists(self, route: str, date: str, schedule_id: str) -> bool:
        with self._get_connection() as conn:
            return conn.execute(EXISTS_SQL, (route, date, schedule_id)).fetchone() is not None

    def _commit(self, records: list[FlightSchedule]) -> int:
        rows = [
            (
                r.route,
                r.departure_date,
                r.id,
                r.departure_time,
                r.airline_code,
                json.dumps(r.to_document()),
            )
            for r in records
        ]
        try:
            with self._get_connection() as conn:
                with conn:
                    cursor = conn.executemany(INSERT_SCHEDULE_SQL, rows)
                    # Rows lost to a concurrent run's insert are ignored
                    return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreWriteError(
                f"Failed to commit batch of {len(records)} schedules: {e}",
                path=records[0].path if records else None,
                batch_size=len(records),
            )

    def _read_shard(self, route: str, date: str) -> list[FlightSchedule]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(SELECT_SHARD_SQL, (route, date)).fetchall()
        except sqlite3.Error as e:
            raise StoreReadError(f"Failed to read {route}/{date}: {e}")
        return [FlightSchedule.from_document(json.loads(row[0])) for row in rows]

    def list_routes(self) -> list[str]:
        with self._get_connection() as conn:
            rows = conn.execute(SELECT_ROUTES_SQL).fetchall()
        return sorted((row[0] for row in rows), key=lambda r: tuple(r.split("-", 1)))


def create_store() -> ShardedStore:
    """Create the store configured by STORE_BACKEND."""
    backend = settings.store.backend.lower()
    if backend == "s3":
        from src.ingestion.db.s3_store import S3ShardedStore
        return S3ShardedStore()
    if backend == "sqlite":
        return SQLiteShardedStore()
    raise ConfigurationError(f"Unknown store backend: {settings.store.backend}")


__all__ = [
    "ShardedStore",
    "SQLiteShardedStore",
    "create_store",
    "month_dates",
]
