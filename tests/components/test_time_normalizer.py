"""
Tests for provider local-time parsing.

The UTC offset must be dropped, never applied: the stored wall-clock time
is what the passenger sees on the ticket.
"""

from datetime import datetime

from src.ingestion.components.time_normalizer import (
    fallback_count,
    format_date,
    format_local,
    parse_local,
    strip_offset,
)


def test_offset_is_stripped_not_applied():
    """+09:00 and -05:00 suffixes leave the wall-clock time untouched."""
    assert parse_local("2025-08-01 06:55+09:00") == datetime(2025, 8, 1, 6, 55)
    assert parse_local("2025-08-01 23:10-05:00") == datetime(2025, 8, 1, 23, 10)
    assert parse_local("2025-08-01T23:10 +08:00") == datetime(2025, 8, 1, 23, 10)


def test_plain_local_times():
    assert parse_local("2025-08-01 06:55") == datetime(2025, 8, 1, 6, 55)
    assert parse_local("2025-08-01T06:55:30") == datetime(2025, 8, 1, 6, 55, 30)
    assert parse_local("2025-08-01 06:55Z") == datetime(2025, 8, 1, 6, 55)


def test_generic_fallback_parser():
    """Non-canonical but parseable strings go through dateutil without tz."""
    parsed = parse_local("2025/08/01 06:55")
    assert parsed == datetime(2025, 8, 1, 6, 55)
    assert parsed.tzinfo is None


def test_unparseable_falls_back_to_now_and_counts():
    now = datetime(2025, 7, 30, 9, 0, 0, 123456)
    before = fallback_count()

    assert parse_local("not a time", now=now) == datetime(2025, 7, 30, 9, 0, 0)
    assert parse_local("", now=now) == datetime(2025, 7, 30, 9, 0, 0)
    assert parse_local(None, now=now) == datetime(2025, 7, 30, 9, 0, 0)

    assert fallback_count() == before + 3


def test_formatting():
    dt = datetime(2025, 8, 1, 6, 55)
    assert format_local(dt) == "2025-08-01T06:55:00"
    assert format_date(dt) == "2025-08-01"
    assert strip_offset(" 2025-08-01 06:55+09:00 ") == "2025-08-01 06:55"
