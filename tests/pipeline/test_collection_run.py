"""
Tests for collection runs.

The upstream client is a Mock; the store and the request repository are
real SQLite databases in tmp_path.
"""

from datetime import datetime
from unittest.mock import Mock, call

import pytest

from src.utils.exceptions import (
    DatabaseError,
    RateLimitError,
    RunOrchestrationError,
    StoreWriteError,
    UpstreamError,
)
from src.ingestion.db import CollectionStatus
from src.ingestion.jobs import CancellationToken, IngestionPipeline


START = datetime(2025, 8, 1, 0, 0)
END = datetime(2025, 8, 2, 0, 0)  # two 12h windows


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def pipeline(client, store, repository, notifier, sleep, fixed_now):
    return IngestionPipeline(
        client=client,
        store=store,
        repository=repository,
        notifier=notifier,
        chunk_delay_seconds=1.0,
        sleep_fn=sleep,
        now_fn=lambda: fixed_now,
    )


@pytest.fixture
def icn_response(raw_flight):
    """Three departures from ICN, two of them to allow-listed airports."""
    return {
        "departures": [
            raw_flight(number="KE 631", arrival_iata="CEB"),
            raw_flight(number="PR 467", arrival_iata="MNL", departure_local="2025-08-01 09:00+09:00"),
            raw_flight(number="KE 705", arrival_iata="NRT", departure_local="2025-08-01 09:30+09:00"),
        ],
        "arrivals": [],
    }


def _new_request(repository):
    return repository.create_request(
        departure_airport="Incheon International Airport",
        departure_iata="ICN",
        start_date=START.isoformat(),
        end_date=END.isoformat(),
    )


def test_end_to_end_icn_run(pipeline, client, repository, store, notifier, icn_response):
    """Only allow-listed destinations are stored; the run completes."""
    client.fetch_window.side_effect = [icn_response, {"departures": [], "arrivals": []}]
    request = _new_request(repository)

    result = pipeline.run(request.id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.total_flights == 2
    assert result.collected_flights == 2
    assert result.stored_flights == 2
    assert store.list_routes() == ["ICN-CEB", "ICN-MNL"]
    assert [f.id for f in store.get_by_route_and_date("ICN-CEB", "2025-08-01")] == ["KE-631_202508010655"]
    assert client.fetch_window.call_count == 2
    notifier.on_success.assert_called_once()
    notifier.on_failure.assert_not_called()


def test_repeat_run_writes_nothing_new(pipeline, client, repository, store, icn_response):
    client.fetch_window.return_value = icn_response
    pipeline.run(_new_request(repository).id, "ICN", START, END)
    commits = store.commit_count

    result = pipeline.run(_new_request(repository).id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.collected_flights == 2
    assert result.stored_flights == 0
    assert store.commit_count == commits


def test_arrival_leg_is_filtered_on_origin(pipeline, client, repository, store, raw_flight):
    client.fetch_window.return_value = {
        "departures": [],
        "arrivals": [
            raw_flight(number="PR 468", departure_iata="MNL", arrival_iata=None),
            raw_flight(number="JL 91", departure_iata="HND", arrival_iata=None),
        ],
    }

    result = pipeline.run(_new_request(repository).id, "ICN", START, START.replace(hour=12))

    assert result.stored_flights == 1
    assert store.list_routes() == ["MNL-ICN"]


def test_window_parameters_are_passed_to_client(pipeline, client, repository, fixed_now):
    client.fetch_window.return_value = {"departures": [], "arrivals": []}

    pipeline.run(_new_request(repository).id, "ICN", START, END)

    # fixed_now is 2025-07-30 09:00; midpoints are 08-01 06:00 and 18:00
    assert client.fetch_window.call_args_list == [
        call("ICN", 2700, 720, now=fixed_now),
        call("ICN", 3420, 720, now=fixed_now),
    ]


def test_failed_window_does_not_fail_run(pipeline, client, repository, sleep, icn_response):
    client.fetch_window.side_effect = [RateLimitError(retry_after=60), icn_response]

    result = pipeline.run(_new_request(repository).id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.total_flights == 2
    assert result.collected_flights == 1
    assert result.stored_flights == 2
    sleep.assert_called_once_with(1.0)


def test_partial_run_shows_in_counters(pipeline, client, repository, raw_flight):
    """A run that loses a window completes with fewer collected than planned windows."""
    client.fetch_window.side_effect = [
        {"departures": [raw_flight(number="KE 631", arrival_iata="CEB")], "arrivals": []},
        UpstreamError("bad gateway", status_code=502),
    ]
    request = _new_request(repository)

    result = pipeline.run(request.id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.collected_flights < result.total_flights
    assert (result.total_flights, result.collected_flights, result.stored_flights) == (2, 1, 1)
    assert result.error_message is None
    stored = repository.get_by_id(request.id)
    assert (stored.total_flights, stored.collected_flights, stored.stored_flights) == (2, 1, 1)


def test_all_windows_failing_still_completes(pipeline, client, repository):
    client.fetch_window.side_effect = UpstreamError("bad gateway", status_code=502)

    result = pipeline.run(_new_request(repository).id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.total_flights == 2
    assert result.collected_flights == 0
    assert result.stored_flights == 0


def test_store_failure_is_a_window_failure(client, repository, notifier, icn_response):
    store = Mock()
    store.batch_put.side_effect = [StoreWriteError("disk full", path="routes/x", batch_size=2), 2]
    client.fetch_window.return_value = icn_response
    pipeline = IngestionPipeline(
        client=client, store=store, repository=repository, notifier=notifier,
        sleep_fn=Mock(), now_fn=lambda: START,
    )

    result = pipeline.run(_new_request(repository).id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED
    assert result.total_flights == 2
    assert result.collected_flights == 1
    assert result.stored_flights == 2


def test_orchestration_failure_marks_request_failed(client, store, repository, notifier, icn_response):
    """A failure outside the per-window handling fails the run and is re-raised."""
    client.fetch_window.return_value = icn_response
    request = _new_request(repository)

    def update_request(request_id, **kwargs):
        if kwargs.get("collected_flights") is not None:
            raise DatabaseError("database is locked")
        return repository.update_request(request_id, **kwargs)

    flaky_repository = Mock()
    flaky_repository.update_request.side_effect = update_request
    pipeline = IngestionPipeline(
        client=client, store=store, repository=flaky_repository, notifier=notifier,
        sleep_fn=Mock(), now_fn=lambda: START,
    )

    with pytest.raises(RunOrchestrationError) as exc_info:
        pipeline.run(request.id, "ICN", START, END)

    assert exc_info.value.request_id == request.id
    stored = repository.get_by_id(request.id)
    assert stored.status == CollectionStatus.FAILED
    assert "[DATABASE]" in stored.error_message
    notifier.on_failure.assert_called_once()


def test_unknown_request_raises(pipeline):
    with pytest.raises(RunOrchestrationError):
        pipeline.run("missing", "ICN", START, END)


def test_cancelled_before_start(pipeline, client, repository, notifier):
    token = CancellationToken()
    token.cancel()

    result = pipeline.run(_new_request(repository).id, "ICN", START, END, cancel_token=token)

    assert result.status == CollectionStatus.FAILED
    assert result.error_message == "cancelled"
    client.fetch_window.assert_not_called()
    assert notifier.on_failure.call_args.kwargs["error_category"] == "CANCELLED"


def test_cancelled_between_windows_keeps_progress(pipeline, client, repository, icn_response):
    token = CancellationToken()

    def fetch(*args):
        token.cancel()
        return icn_response

    client.fetch_window.side_effect = fetch

    result = pipeline.run(_new_request(repository).id, "ICN", START, END, cancel_token=token)

    assert result.status == CollectionStatus.FAILED
    assert result.error_message == "cancelled"
    assert result.total_flights == 2
    assert result.collected_flights == 1
    assert result.stored_flights == 2
    assert client.fetch_window.call_count == 1


def test_empty_range_completes_without_calls(pipeline, client, repository):
    result = pipeline.run(_new_request(repository).id, "ICN", START, START)

    assert result.status == CollectionStatus.COMPLETED
    assert result.total_flights == 0
    client.fetch_window.assert_not_called()


def test_notifier_failure_does_not_affect_run(pipeline, client, repository, notifier):
    client.fetch_window.return_value = {"departures": [], "arrivals": []}
    notifier.on_success.side_effect = RuntimeError("slack down")

    result = pipeline.run(_new_request(repository).id, "ICN", START, END)

    assert result.status == CollectionStatus.COMPLETED


def test_collect_day_uses_two_slots(pipeline, client, store, icn_response):
    client.fetch_range.return_value = icn_response

    written = pipeline.collect_day("ICN", "2025-08-01")

    assert written == 2
    assert client.fetch_range.call_args_list == [
        call("ICN", datetime(2025, 8, 1, 0, 0), datetime(2025, 8, 1, 12, 0)),
        call("ICN", datetime(2025, 8, 1, 12, 0), datetime(2025, 8, 1, 23, 59)),
    ]


def test_collect_day_survives_slot_failure(pipeline, client, icn_response):
    client.fetch_range.side_effect = [UpstreamError("boom", status_code=500), icn_response]

    assert pipeline.collect_day("ICN", "2025-08-01") == 2


def test_collect_month_walks_every_day(pipeline):
    pipeline.collect_day = Mock(return_value=1)

    assert pipeline.collect_month("ICN", 2025, 2) == 28
    assert pipeline.collect_day.call_args_list[0] == call("ICN", "2025-02-01")
    assert pipeline.collect_day.call_args_list[-1] == call("ICN", "2025-02-28")
