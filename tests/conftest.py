"""
Shared fixtures for the flight-schedule tests.

Nothing here touches the network: the upstream API and Slack are replaced
with mocks or httpx.MockTransport, and SQLite databases live in tmp_path.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from src.ingestion.db import (
    CollectionRequestRepository,
    FlightSchedule,
    SQLiteShardedStore,
)


def make_raw(
    number: str = "KE 631",
    arrival_iata: str | None = "CEB",
    departure_iata: str | None = None,
    departure_local: str = "2025-08-01 06:55+09:00",
    arrival_local: str = "2025-08-01 10:30+08:00",
    airline: str | None = "Korean Air",
    status: str = "Expected",
) -> dict:
    """Raw AeroDataBox record as found in the departures/arrivals lists."""
    departure = {"scheduledTime": {"local": departure_local}}
    if departure_iata:
        departure["airport"] = {"iata": departure_iata, "name": f"{departure_iata} Airport"}

    arrival = {"scheduledTime": {"local": arrival_local}}
    if arrival_iata:
        arrival["airport"] = {"iata": arrival_iata, "name": f"{arrival_iata} Airport"}

    raw = {
        "number": number,
        "status": status,
        "departure": departure,
        "arrival": arrival,
        "aircraft": {"model": "Airbus A330"},
        "isCargo": False,
    }
    if airline:
        raw["airline"] = {"name": airline}
    return raw


def make_schedule(
    flight_id: str = "KE-631_202508010655",
    departure_iata: str = "ICN",
    arrival_iata: str = "CEB",
    departure_time: str = "2025-08-01T06:55:00",
    airline_code: str = "KE",
) -> FlightSchedule:
    date = departure_time[:10]
    return FlightSchedule(
        id=flight_id,
        flight_number=flight_id.split("_")[0][len(airline_code):],
        airline="Korean Air",
        airline_code=airline_code,
        departure_airport=f"{departure_iata} Airport",
        departure_iata=departure_iata,
        arrival_airport=f"{arrival_iata} Airport",
        arrival_iata=arrival_iata,
        departure_time=departure_time,
        arrival_time=departure_time,
        departure_date=date,
        arrival_date=date,
    )


@pytest.fixture
def store(tmp_path):
    """SQLite-backed sharded store in a temp directory."""
    return SQLiteShardedStore(db_path=tmp_path / "schedules.db", batch_size=500)


@pytest.fixture
def repository(tmp_path):
    """Collection request repository in a temp directory."""
    return CollectionRequestRepository(db_path=tmp_path / "requests.db")


@pytest.fixture
def fixed_now():
    return datetime(2025, 7, 30, 9, 0, 0)


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def raw_flight():
    """Factory for raw upstream records."""
    return make_raw


@pytest.fixture
def schedule():
    """Factory for normalized schedules."""
    return make_schedule
