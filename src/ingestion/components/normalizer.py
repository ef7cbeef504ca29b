"""
Conversion of raw AeroDataBox flight records into FlightSchedule entities.

A raw record comes from either the ``departures`` or the ``arrivals`` list
of an airport query. In a departure-leg record the monitored airport is
the origin, so the origin side is fixed to the requested code; in an
arrival-leg record it is the destination.
"""

from datetime import datetime
from typing import Any

from src.utils import logger
from src.ingestion.airports import airport_name
from src.ingestion.components.time_normalizer import (
    format_date,
    format_local,
    parse_local,
)
from src.ingestion.db.models import FlightSchedule, FlightStatus, Leg


RawFlight = dict[str, Any]


def _get(raw: RawFlight, *keys: str) -> Any:
    """Nested lookup tolerant of missing or null levels."""
    value: Any = raw
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def split_flight_number(number: str) -> tuple[str, str]:
    """
    Split ``"KE 631"`` into ``("KE", "631")``.

    Without a space the airline code is empty and the whole string is the
    flight number.
    """
    number = (number or "").strip()
    if " " not in number:
        return "", number
    airline_code, flight_number = number.split(" ", 1)
    return airline_code, flight_number.strip()


def map_status(status: str | None) -> FlightStatus:
    """Map the provider's free-text status onto FlightStatus."""
    status_lower = (status or "").lower()

    if "cancelled" in status_lower or "canceled" in status_lower:
        return FlightStatus.CANCELLED
    if "delayed" in status_lower:
        return FlightStatus.DELAYED
    if "diverted" in status_lower:
        return FlightStatus.DIVERTED

    return FlightStatus.SCHEDULED


def make_schedule_id(airline_code: str, flight_number: str, departure: datetime) -> str:
    """Deterministic id: airline code, flight number and departure minute, e.g. ``KE-631_202508010655``."""
    return f"{airline_code}-{flight_number}_{departure.strftime('%Y%m%d%H%M')}"


class ScheduleNormalizer:
    """Builds canonical schedules from raw provider records."""

    def __init__(self, now: datetime | None = None):
        # Fixed fallback instant for unparseable times; None means "current time"
        self.now = now

    def to_schedule(
        self,
        raw: RawFlight,
        date: str,
        leg: Leg,
        requested_iata: str,
    ) -> FlightSchedule:
        """
        Convert one raw record.

        Args:
            raw: Record from the ``departures`` or ``arrivals`` list
            date: Date of the window the record was fetched for
            leg: Which list the record came from
            requested_iata: The monitored airport

        Returns:
            FlightSchedule without write timestamps
        """
        airline_code, flight_number = split_flight_number(raw.get("number", ""))

        if leg == Leg.DEPARTURE:
            departure_iata = requested_iata
            departure_name = airport_name(requested_iata, _get(raw, "departure", "airport", "name"))
            arrival_iata = _get(raw, "arrival", "airport", "iata") or ""
            arrival_name = _get(raw, "arrival", "airport", "name") or ""
        else:
            departure_iata = _get(raw, "departure", "airport", "iata") or ""
            departure_name = _get(raw, "departure", "airport", "name") or ""
            arrival_iata = requested_iata
            arrival_name = airport_name(requested_iata, _get(raw, "arrival", "airport", "name"))

        departure_time = parse_local(_get(raw, "departure", "scheduledTime", "local"), now=self.now)
        arrival_time = parse_local(_get(raw, "arrival", "scheduledTime", "local"), now=self.now)

        schedule = FlightSchedule(
            id=make_schedule_id(airline_code, flight_number, departure_time),
            flight_number=flight_number,
            airline=_get(raw, "airline", "name") or "Unknown",
            airline_code=airline_code,
            departure_airport=departure_name,
            departure_iata=departure_iata,
            arrival_airport=arrival_name,
            arrival_iata=arrival_iata,
            departure_time=format_local(departure_time),
            arrival_time=format_local(arrival_time),
            departure_date=format_date(departure_time),
            arrival_date=format_date(arrival_time),
            status=map_status(raw.get("status")),
            aircraft_type=_get(raw, "aircraft", "model"),
            call_sign=raw.get("callSign"),
            is_cargo=bool(raw.get("isCargo", False)),
            codeshare_status=raw.get("codeshareStatus"),
        )

        logger.trace(f"Normalized {raw.get('number')} ({leg.value}, window {date}) -> {schedule.path}")
        return schedule

    def normalize_all(
        self,
        raws: list[RawFlight],
        date: str,
        leg: Leg,
        requested_iata: str,
    ) -> list[FlightSchedule]:
        """Convert a list of records, skipping those that fail to convert."""
        schedules = []
        for raw in raws:
            try:
                schedules.append(self.to_schedule(raw, date, leg, requested_iata))
            except Exception as e:
                logger.error(f"Failed to normalize {leg.value} record {raw.get('number')!r}: {e}")
        return schedules


__all__ = [
    "RawFlight",
    "ScheduleNormalizer",
    "split_flight_number",
    "map_status",
    "make_schedule_id",
]
