"""Tests for raw record to FlightSchedule conversion."""

from datetime import datetime

from src.ingestion.components.normalizer import (
    ScheduleNormalizer,
    map_status,
    split_flight_number,
)
from src.ingestion.db import FlightStatus, Leg


def test_departure_leg_fields(raw_flight):
    """The monitored airport is the origin of a departure-leg record."""
    schedule = ScheduleNormalizer().to_schedule(raw_flight(), "2025-08-01", Leg.DEPARTURE, "ICN")

    assert schedule.id == "KE-631_202508010655"
    assert schedule.airline_code == "KE"
    assert schedule.flight_number == "631"
    assert schedule.airline == "Korean Air"
    assert schedule.departure_iata == "ICN"
    assert schedule.departure_airport == "Incheon International Airport"
    assert schedule.arrival_iata == "CEB"
    assert schedule.arrival_airport == "CEB Airport"
    assert schedule.departure_time == "2025-08-01T06:55:00"
    assert schedule.arrival_time == "2025-08-01T10:30:00"
    assert schedule.departure_date == "2025-08-01"
    assert schedule.aircraft_type == "Airbus A330"
    assert schedule.status == FlightStatus.SCHEDULED
    assert schedule.path == "routes/ICN-CEB/2025-08-01/flights/KE-631_202508010655"


def test_arrival_leg_fields(raw_flight):
    """The monitored airport is the destination of an arrival-leg record."""
    raw = raw_flight(
        number="PR 468",
        departure_iata="MNL",
        arrival_iata=None,
        departure_local="2025-08-01 23:40+08:00",
        arrival_local="2025-08-02 04:45+09:00",
        airline="Philippine Airlines",
    )

    schedule = ScheduleNormalizer().to_schedule(raw, "2025-08-01", Leg.ARRIVAL, "ICN")

    assert schedule.route == "MNL-ICN"
    assert schedule.arrival_airport == "Incheon International Airport"
    assert schedule.departure_airport == "MNL Airport"
    # Filed under the departure date even though it lands the next day
    assert schedule.path == "routes/MNL-ICN/2025-08-01/flights/PR-468_202508012340"
    assert schedule.arrival_date == "2025-08-02"


def test_id_is_deterministic(raw_flight):
    normalizer = ScheduleNormalizer()
    first = normalizer.to_schedule(raw_flight(), "2025-08-01", Leg.DEPARTURE, "ICN")
    second = normalizer.to_schedule(raw_flight(), "2025-08-01", Leg.DEPARTURE, "ICN")
    assert first.id == second.id
    assert first.path == second.path

    # any change in airline code, flight number or departure minute changes the id
    variants = [
        raw_flight(number="KE631"),
        raw_flight(number="KE 633"),
        raw_flight(number="OZ 631"),
        raw_flight(departure_local="2025-08-01 06:56+09:00"),
    ]
    ids = {normalizer.to_schedule(raw, "2025-08-01", Leg.DEPARTURE, "ICN").id for raw in variants}
    assert first.id not in ids
    assert len(ids) == len(variants)


def test_flight_number_without_space():
    assert split_flight_number("KE 631") == ("KE", "631")
    assert split_flight_number("5J 188") == ("5J", "188")
    assert split_flight_number("631") == ("", "631")


def test_missing_airline_defaults_to_unknown(raw_flight):
    schedule = ScheduleNormalizer().to_schedule(
        raw_flight(airline=None), "2025-08-01", Leg.DEPARTURE, "ICN"
    )
    assert schedule.airline == "Unknown"


def test_status_mapping():
    assert map_status("Canceled") == FlightStatus.CANCELLED
    assert map_status("CancelledUncertain") == FlightStatus.CANCELLED
    assert map_status("Delayed") == FlightStatus.DELAYED
    assert map_status("Diverted") == FlightStatus.DIVERTED
    assert map_status("Expected") == FlightStatus.SCHEDULED
    assert map_status(None) == FlightStatus.SCHEDULED


def test_unparseable_time_uses_fallback_instant(raw_flight):
    now = datetime(2025, 7, 30, 9, 0, 0)
    raw = raw_flight(departure_local="garbage in")

    schedule = ScheduleNormalizer(now=now).to_schedule(raw, "2025-08-01", Leg.DEPARTURE, "ICN")

    assert schedule.departure_time == "2025-07-30T09:00:00"
    assert schedule.id == "KE-631_202507300900"


def test_normalize_all_skips_broken_records(raw_flight):
    broken = raw_flight()
    broken["number"] = 631  # not a string

    schedules = ScheduleNormalizer().normalize_all(
        [raw_flight(), broken, raw_flight(number="7C 2405")],
        "2025-08-01",
        Leg.DEPARTURE,
        "ICN",
    )

    assert [s.id for s in schedules] == ["KE-631_202508010655", "7C-2405_202508010655"]
