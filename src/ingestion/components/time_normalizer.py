"""
Provider local-time parsing.

AeroDataBox reports scheduled times as the wall-clock time at the airport
with the UTC offset appended, e.g. ``2025-08-01 06:55+09:00``. The offset is
discarded, never applied: the stored value must read 06:55, the time printed
on the passenger's ticket.

Unparseable values degrade to "now" so one bad field cannot abort a batch.
Every such fallback is logged with ``event=time_parse_fallback`` and counted.
"""

import re
import threading
from datetime import datetime

from dateutil import parser as dateutil_parser

from src.utils import logger
from src.utils.exceptions import ParseError


LOCAL_FORMAT = "%Y-%m-%dT%H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

_OFFSET_SUFFIX = re.compile(r"\s*(?:[+-]\d{2}:\d{2}|Z)$")
_LOCAL_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2}))?$"
)

_fallbacks = 0
_fallbacks_lock = threading.Lock()


def strip_offset(value: str) -> str:
    """Remove a trailing ``±HH:MM`` or ``Z`` suffix."""
    return _OFFSET_SUFFIX.sub("", value.strip())


def _fallback(value: str | None, reason: str, now: datetime | None) -> datetime:
    global _fallbacks
    with _fallbacks_lock:
        _fallbacks += 1

    error = ParseError(value, reason)
    logger.bind(event="time_parse_fallback", value=value).warning(
        f"{error.message}; using current time"
    )
    return (now or datetime.now()).replace(microsecond=0)


def parse_local(value: str | None, now: datetime | None = None) -> datetime:
    """
    Parse a provider local-time string into a timezone-naive datetime.

    Args:
        value: ``YYYY-MM-DD HH:mm[:ss][±HH:MM]``
        now: Value to fall back to (defaults to the current local time)

    Returns:
        Naive datetime holding the airport wall-clock time
    """
    if not value or not value.strip():
        return _fallback(value, "empty time string", now)

    cleaned = strip_offset(value)

    match = _LOCAL_PATTERN.match(cleaned)
    if match:
        year, month, day, hour, minute, second = match.groups()
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hour), int(minute), int(second or 0),
            )
        except ValueError:
            pass

    try:
        return dateutil_parser.parse(cleaned).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return _fallback(value, "unparseable time string", now)


def format_local(dt: datetime) -> str:
    """``YYYY-MM-DDTHH:mm:ss`` without offset."""
    return dt.strftime(LOCAL_FORMAT)


def format_date(dt: datetime) -> str:
    return dt.strftime(DATE_FORMAT)


def fallback_count() -> int:
    """Number of fallbacks to "now" since process start."""
    return _fallbacks


__all__ = [
    "parse_local",
    "strip_offset",
    "format_local",
    "format_date",
    "fallback_count",
]
