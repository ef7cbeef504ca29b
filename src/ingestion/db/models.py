"""
Data models for the flight-schedule service.

FlightSchedule documents live under a route/date sharded path:

    routes/{departureIata}-{arrivalIata}/{departureDate}/flights/{id}

CollectionRequest records track the progress of one collection run.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, NamedTuple


class Leg(str, Enum):
    """Which half of a monitored-airport query a raw record came from."""
    DEPARTURE = "departure"
    ARRIVAL = "arrival"


class FlightStatus(str, Enum):
    """Normalized flight status."""
    SCHEDULED = "Scheduled"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"
    DIVERTED = "Diverted"


class CollectionStatus(str, Enum):
    """Status of a collection run. Only moves forward."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CollectionStatus.COMPLETED, CollectionStatus.FAILED)

    def can_transition_to(self, target: "CollectionStatus") -> bool:
        """Whether a run in this status may move to ``target``."""
        if self == target:
            return not self.is_terminal
        return _STATUS_RANK[target] > _STATUS_RANK[self] and not self.is_terminal


_STATUS_RANK = {
    CollectionStatus.PENDING: 0,
    CollectionStatus.IN_PROGRESS: 1,
    CollectionStatus.COMPLETED: 2,
    CollectionStatus.FAILED: 2,
}


ROUTES_ROOT = "routes"


def route_key(departure_iata: str, arrival_iata: str) -> str:
    """Route shard key, e.g. ``ICN-CEB``."""
    return f"{departure_iata}-{arrival_iata}"


def schedule_path(route: str, date: str, schedule_id: str) -> str:
    """Document path for one schedule."""
    return f"{ROUTES_ROOT}/{route}/{date}/flights/{schedule_id}"


def split_path(path: str) -> tuple[str, str, str]:
    """
    Split a document path into its (route, date, id) composite key.

    Raises:
        ValueError: If the path does not have the routes/{route}/{date}/flights/{id} shape
    """
    parts = path.strip("/").split("/")
    if len(parts) != 5 or parts[0] != ROUTES_ROOT or parts[3] != "flights":
        raise ValueError(f"Not a schedule path: {path}")
    return parts[1], parts[2], parts[4]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlightSchedule(NamedTuple):
    """
    One scheduled flight occurrence.

    Times are the wall-clock local time at each airport as reported by the
    provider, formatted ``YYYY-MM-DDTHH:mm:ss`` with no offset.
    """
    id: str
    flight_number: str
    airline: str
    airline_code: str
    departure_airport: str
    departure_iata: str
    arrival_airport: str
    arrival_iata: str
    departure_time: str
    arrival_time: str
    departure_date: str
    arrival_date: str
    status: FlightStatus = FlightStatus.SCHEDULED
    aircraft_type: str | None = None
    call_sign: str | None = None
    is_cargo: bool = False
    codeshare_status: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def route(self) -> str:
        return route_key(self.departure_iata, self.arrival_iata)

    @property
    def path(self) -> str:
        # Filed under the departure date, also for arrival-leg records
        return schedule_path(self.route, self.departure_date, self.id)

    @property
    def is_storable(self) -> bool:
        return bool(self.departure_iata) and bool(self.arrival_iata)

    def stamped(self, now: datetime | None = None) -> "FlightSchedule":
        """Copy with write timestamps set."""
        now = now or _utcnow()
        return self._replace(created_at=now, updated_at=now)

    def to_document(self) -> dict[str, Any]:
        """Convert to the camelCase document stored in the backing store."""
        return {
            "id": self.id,
            "flightNumber": self.flight_number,
            "airline": self.airline,
            "airlineCode": self.airline_code,
            "departureAirport": self.departure_airport,
            "departureIata": self.departure_iata,
            "arrivalAirport": self.arrival_airport,
            "arrivalIata": self.arrival_iata,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "departureDate": self.departure_date,
            "arrivalDate": self.arrival_date,
            "aircraftType": self.aircraft_type,
            "status": self.status.value,
            "callSign": self.call_sign,
            "isCargo": self.is_cargo,
            "codeshareStatus": self.codeshare_status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "FlightSchedule":
        """Build from a stored camelCase document."""
        created_at = doc.get("createdAt")
        updated_at = doc.get("updatedAt")
        return cls(
            id=doc["id"],
            flight_number=doc["flightNumber"],
            airline=doc.get("airline", ""),
            airline_code=doc.get("airlineCode", ""),
            departure_airport=doc.get("departureAirport", ""),
            departure_iata=doc["departureIata"],
            arrival_airport=doc.get("arrivalAirport", ""),
            arrival_iata=doc["arrivalIata"],
            departure_time=doc["departureTime"],
            arrival_time=doc["arrivalTime"],
            departure_date=doc["departureDate"],
            arrival_date=doc["arrivalDate"],
            status=FlightStatus(doc.get("status", FlightStatus.SCHEDULED.value)),
            aircraft_type=doc.get("aircraftType"),
            call_sign=doc.get("callSign"),
            is_cargo=bool(doc.get("isCargo", False)),
            codeshare_status=doc.get("codeshareStatus"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


class CollectionRequest(NamedTuple):
    """
    Progress record of a single collection run.

    ``total_flights`` is the number of windows planned for the run and
    ``collected_flights`` the number fetched and stored without error, so a
    partly collected run ends with ``collected_flights < total_flights``.
    ``stored_flights`` counts schedules newly written by the run.
    """
    id: str
    departure_airport: str
    departure_iata: str
    start_date: str
    end_date: str
    status: CollectionStatus
    total_flights: int
    collected_flights: int
    created_at: datetime
    updated_at: datetime
    error_message: str | None = None
    stored_flights: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "departureAirport": self.departure_airport,
            "departureIata": self.departure_iata,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "status": self.status.value,
            "totalFlights": self.total_flights,
            "collectedFlights": self.collected_flights,
            "storedFlights": self.stored_flights,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "errorMessage": self.error_message,
        }


__all__ = [
    "Leg",
    "FlightStatus",
    "CollectionStatus",
    "FlightSchedule",
    "CollectionRequest",
    "ROUTES_ROOT",
    "route_key",
    "schedule_path",
    "split_path",
]
