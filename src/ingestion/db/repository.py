"""
Collection request repository.

Uses SQLite to track collection runs and their progress counters.
"""

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from src.utils import logger
from src.utils.exceptions import (
    CollectionRequestError,
    InvalidStatusTransition,
    RunNotFoundError,
)
from src.ingestion.config import settings
from src.ingestion.db.models import CollectionRequest, CollectionStatus


# SQL statements
CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS flight_collection_requests (
    id TEXT PRIMARY KEY,
    departure_airport TEXT NOT NULL,
    departure_iata TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    total_flights INTEGER NOT NULL DEFAULT 0,
    collected_flights INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    error_message TEXT,
    stored_flights INTEGER NOT NULL DEFAULT 0
)
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_collection_created_at ON flight_collection_requests(created_at);
CREATE INDEX IF NOT EXISTS idx_collection_status ON flight_collection_requests(status);
"""

INSERT_REQUEST_SQL = """
INSERT INTO flight_collection_requests
    (id, departure_airport, departure_iata, start_date, end_date, status,
     total_flights, collected_flights, created_at, updated_at, error_message, stored_flights)
VALUES
    (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

UPDATE_REQUEST_SQL = """
UPDATE flight_collection_requests
SET status = ?, total_flights = ?, collected_flights = ?, stored_flights = ?,
    updated_at = ?, error_message = ?
WHERE id = ?
"""

SELECT_COLUMNS = (
    "id, departure_airport, departure_iata, start_date, end_date, status, "
    "total_flights, collected_flights, created_at, updated_at, error_message, stored_flights"
)

SELECT_BY_ID_SQL = f"SELECT {SELECT_COLUMNS} FROM flight_collection_requests WHERE id = ?"

SELECT_LATEST_SQL = f"""
SELECT {SELECT_COLUMNS} FROM flight_collection_requests
ORDER BY created_at DESC, rowid DESC
LIMIT ?
"""

SELECT_BY_STATUS_SQL = f"""
SELECT {SELECT_COLUMNS} FROM flight_collection_requests
WHERE status = ?
ORDER BY created_at DESC, rowid DESC
"""


def _row_to_request(row: tuple) -> CollectionRequest:
    """Convert database row to CollectionRequest."""
    return CollectionRequest(
        id=row[0],
        departure_airport=row[1],
        departure_iata=row[2],
        start_date=row[3],
        end_date=row[4],
        status=CollectionStatus(row[5]),
        total_flights=row[6],
        collected_flights=row[7],
        created_at=datetime.fromisoformat(row[8]),
        updated_at=datetime.fromisoformat(row[9]),
        error_message=row[10],
        stored_flights=row[11],
    )


class CollectionRequestRepository:
    """
    Repository for collection run progress records in SQLite.

    Enforces the run lifecycle: status only moves forward
    (pending -> in_progress -> completed | failed) and the
    progress counters never decrease.
    """

    def __init__(self, db_path: str | Path | None = None):
        """
        Initialize the repository.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path) if db_path else settings.database.full_path
        self._lock = threading.Lock()
        self._ensure_database()

    def _ensure_database(self) -> None:
        """Ensure database and tables exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(CREATE_TABLE_SQL)
            cursor.executescript(CREATE_INDEX_SQL)
            conn.commit()

        logger.info(f"Collection request table ready at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection, closed on exit."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
        finally:
            conn.close()

    def create_request(
        self,
        departure_airport: str,
        departure_iata: str,
        start_date: str,
        end_date: str,
    ) -> CollectionRequest:
        """
        Create a new pending collection request.

        Returns:
            Created CollectionRequest with assigned ID
        """
        now = datetime.now(timezone.utc)
        request = CollectionRequest(
            id=uuid.uuid4().hex,
            departure_airport=departure_airport,
            departure_iata=departure_iata,
            start_date=start_date,
            end_date=end_date,
            status=CollectionStatus.PENDING,
            total_flights=0,
            collected_flights=0,
            created_at=now,
            updated_at=now,
        )

        try:
            with self._get_connection() as conn:
                conn.execute(
                    INSERT_REQUEST_SQL,
                    (
                        request.id,
                        request.departure_airport,
                        request.departure_iata,
                        request.start_date,
                        request.end_date,
                        request.status.value,
                        request.total_flights,
                        request.collected_flights,
                        now.isoformat(),
                        now.isoformat(),
                        None,
                        request.stored_flights,
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise CollectionRequestError(f"Failed to create collection request: {e}")

        logger.debug(f"Created collection request {request.id} for {departure_iata}")
        return request

    def update_request(
        self,
        request_id: str,
        status: CollectionStatus | None = None,
        total_flights: int | None = None,
        collected_flights: int | None = None,
        stored_flights: int | None = None,
        error_message: str | None = None,
    ) -> CollectionRequest:
        """
        Update an existing collection request.

        Raises:
            RunNotFoundError: If the request does not exist
            InvalidStatusTransition: If the status would move backwards
            CollectionRequestError: If a counter would decrease
        """
        with self._lock:
            existing = self.get_by_id(request_id)
            if existing is None:
                raise RunNotFoundError(request_id)

            new_status = status if status is not None else existing.status
            if status is not None and not existing.status.can_transition_to(status):
                raise InvalidStatusTransition(request_id, existing.status.value, status.value)

            new_total = total_flights if total_flights is not None else existing.total_flights
            new_collected = collected_flights if collected_flights is not None else existing.collected_flights
            new_stored = stored_flights if stored_flights is not None else existing.stored_flights
            if (
                new_total < existing.total_flights
                or new_collected < existing.collected_flights
                or new_stored < existing.stored_flights
            ):
                raise CollectionRequestError(
                    f"Request {request_id}: progress counters cannot decrease"
                )

            new_error = error_message if error_message is not None else existing.error_message
            now = datetime.now(timezone.utc)

            with self._get_connection() as conn:
                conn.execute(
                    UPDATE_REQUEST_SQL,
                    (
                        new_status.value, new_total, new_collected, new_stored,
                        now.isoformat(), new_error, request_id,
                    ),
                )
                conn.commit()

        logger.debug(
            f"Updated collection request {request_id}: status={new_status.value}, "
            f"windows={new_collected}/{new_total}, stored={new_stored}"
        )
        return existing._replace(
            status=new_status,
            total_flights=new_total,
            collected_flights=new_collected,
            stored_flights=new_stored,
            updated_at=now,
            error_message=new_error,
        )

    def get_by_id(self, request_id: str) -> CollectionRequest | None:
        """Get a request by ID."""
        with self._get_connection() as conn:
            row = conn.execute(SELECT_BY_ID_SQL, (request_id,)).fetchone()

        return _row_to_request(row) if row else None

    def get_latest(self, limit: int = 50) -> list[CollectionRequest]:
        """Get the most recent collection requests, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(SELECT_LATEST_SQL, (limit,)).fetchall()

        return [_row_to_request(row) for row in rows]

    def get_by_status(self, status: CollectionStatus) -> list[CollectionRequest]:
        """Get all requests with a specific status."""
        with self._get_connection() as conn:
            rows = conn.execute(SELECT_BY_STATUS_SQL, (status.value,)).fetchall()

        return [_row_to_request(row) for row in rows]


def create_repository() -> CollectionRequestRepository:
    """Create a new repository with default settings."""
    return CollectionRequestRepository()


__all__ = [
    "CollectionRequestRepository",
    "create_repository",
]
