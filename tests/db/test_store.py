"""Tests for the SQLite sharded schedule store."""

from unittest.mock import patch

import pytest

from src.utils.exceptions import StoreWriteError
from src.ingestion.db import SQLiteShardedStore, month_dates


def test_batch_put_is_idempotent(store, schedule):
    """Writing the same schedules twice stores them once."""
    flights = [
        schedule("KE-631_202508010655"),
        schedule("KE-633_202508011900", departure_time="2025-08-01T19:00:00"),
    ]

    assert store.batch_put(flights) == 2
    assert store.batch_put(flights) == 0
    assert len(store.get_by_route_and_date("ICN-CEB", "2025-08-01")) == 2


def test_duplicates_within_one_call_are_written_once(store, schedule):
    assert store.batch_put([schedule(), schedule()]) == 1
    assert store.commit_count == 1


def test_commit_count_is_ceil_of_new_records(tmp_path, schedule):
    store = SQLiteShardedStore(db_path=tmp_path / "s.db")
    flights = [
        schedule(f"KE-{n}_202508010655", departure_time=f"2025-08-01T{n:02d}:00:00")
        for n in range(7)
    ]

    assert store.batch_put(flights, max_batch_size=3) == 7
    assert store.commit_count == 3

    # Nothing new: no commits at all
    assert store.batch_put(flights, max_batch_size=3) == 0
    assert store.commit_count == 3


def test_records_without_codes_are_rejected(store, schedule):
    assert store.batch_put([schedule(arrival_iata="")]) == 0
    assert store.commit_count == 0
    assert store.list_routes() == []


def test_invalid_batch_size(store, schedule):
    with pytest.raises(ValueError):
        store.batch_put([schedule()], max_batch_size=0)


def test_exists_by_path(store, schedule):
    flight = schedule()
    assert not store.exists(flight.path)
    store.batch_put([flight])
    assert store.exists("routes/ICN-CEB/2025-08-01/flights/KE-631_202508010655")


def test_written_records_are_stamped(store, schedule):
    store.batch_put([schedule()])
    stored = store.get_by_route_and_date("ICN-CEB", "2025-08-01")[0]
    assert stored.created_at is not None
    assert stored.created_at == stored.updated_at


def test_day_query_sorted_by_departure(store, schedule):
    store.batch_put([
        schedule("KE-633_202508011900", departure_time="2025-08-01T19:00:00"),
        schedule("KE-631_202508010655", departure_time="2025-08-01T06:55:00"),
        schedule("KE-631_202508020655", departure_time="2025-08-02T06:55:00"),
    ])

    flights = store.get_by_route_and_date("ICN-CEB", "2025-08-01")

    assert [f.id for f in flights] == ["KE-631_202508010655", "KE-633_202508011900"]


def test_month_query_reads_every_day(store, schedule):
    store.batch_put([
        schedule("KE-1_202508310800", departure_time="2025-08-31T08:00:00"),
        schedule("KE-1_202508010800", departure_time="2025-08-01T08:00:00"),
        schedule("KE-1_202508150800", departure_time="2025-08-15T08:00:00"),
        schedule("KE-1_202509010800", departure_time="2025-09-01T08:00:00"),
        schedule("KE-1_202508020800", departure_iata="ICN", arrival_iata="MNL",
                 departure_time="2025-08-02T08:00:00"),
    ])

    flights = store.get_by_route_and_month("ICN-CEB", 2025, 8)

    assert [f.departure_date for f in flights] == ["2025-08-01", "2025-08-15", "2025-08-31"]


def test_month_dates():
    assert len(month_dates(2024, 2)) == 29
    assert month_dates(2025, 2)[-1] == "2025-02-28"


def test_list_routes_sorted(store, schedule):
    store.batch_put([
        schedule(departure_iata="MNL", arrival_iata="ICN"),
        schedule(departure_iata="ICN", arrival_iata="MNL"),
        schedule(departure_iata="ICN", arrival_iata="CEB"),
    ])

    assert store.list_routes() == ["ICN-CEB", "ICN-MNL", "MNL-ICN"]


def test_cross_route_reads(store, schedule):
    store.batch_put([
        schedule("KE-631_202508010655", arrival_iata="CEB"),
        schedule("PR-467_202508010900", arrival_iata="MNL", airline_code="PR",
                 departure_time="2025-08-01T09:00:00"),
    ])

    assert len(store.get_by_date("2025-08-01")) == 2
    assert [f.id for f in store.get_by_airline("PR", "2025-08-01")] == ["PR-467_202508010900"]


def test_failed_commit_keeps_earlier_batches(store, schedule):
    flights = [
        schedule(f"KE-{n}_202508010655", departure_time=f"2025-08-01T{n:02d}:00:00")
        for n in range(4)
    ]
    real_commit = store._commit
    calls = []

    def flaky_commit(records):
        calls.append(len(records))
        if len(calls) == 2:
            raise StoreWriteError("disk full", path=records[0].path, batch_size=len(records))
        return real_commit(records)

    with patch.object(store, "_commit", side_effect=flaky_commit):
        with pytest.raises(StoreWriteError):
            store.batch_put(flights, max_batch_size=2)

    assert len(store.get_by_route_and_date("ICN-CEB", "2025-08-01")) == 2
