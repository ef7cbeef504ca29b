"""Destination allow-list filtering of raw flight records."""

from typing import Iterable

from src.utils import logger
from src.ingestion.airports import PHILIPPINE_AIRPORTS
from src.ingestion.config import settings
from src.ingestion.db.models import Leg
from src.ingestion.components.normalizer import RawFlight, _get


class RelevanceFilter:
    """
    Keeps records whose far endpoint is an allow-listed airport.

    For a departure leg the far endpoint is the arrival airport; for an
    arrival leg it is the departure airport.
    """

    def __init__(self, allowed: Iterable[str] | None = None):
        allowed = allowed or settings.pipeline.relevant_airports or PHILIPPINE_AIRPORTS.keys()
        self.allowed = frozenset(code.upper() for code in allowed)

    def is_relevant(self, raw: RawFlight, leg: Leg) -> bool:
        side = "arrival" if leg == Leg.DEPARTURE else "departure"
        code = _get(raw, side, "airport", "iata")
        return bool(code) and code.upper() in self.allowed

    def keep_relevant(self, raws: list[RawFlight], leg: Leg) -> list[RawFlight]:
        kept = [raw for raw in raws if self.is_relevant(raw, leg)]
        logger.debug(f"Relevance filter ({leg.value}): kept {len(kept)} of {len(raws)}")
        return kept


__all__ = ["RelevanceFilter"]
