"""Airport tables used for relevance filtering and endpoint naming."""

# Destinations considered relevant to the agency (allow-list)
PHILIPPINE_AIRPORTS: dict[str, str] = {
    "CEB": "Mactan-Cebu International Airport",
    "CRK": "Clark International Airport",
    "MNL": "Ninoy Aquino International Airport",
    "TAG": "Tagbilaran Airport",
    "KLO": "Kalibo International Airport",
    "DVO": "Francisco Bangoy International Airport",
    "ILO": "Iloilo International Airport",
    "BCD": "Bacolod-Silay International Airport",
    "PPS": "Puerto Princesa International Airport",
    "CGY": "Laguindingan Airport",
    "ZAM": "Zamboanga International Airport",
    "TAC": "Daniel Z. Romualdez Airport",
}

# Airports that may be monitored by a collection run
DEPARTURE_AIRPORTS: dict[str, str] = {
    "ICN": "Incheon International Airport",
    "PUS": "Gimhae International Airport",
    "GMP": "Gimpo International Airport",
    "CJU": "Jeju International Airport",
    **PHILIPPINE_AIRPORTS,
}


def airport_name(iata: str, fallback: str | None = None) -> str:
    """Known name for an IATA code, else the fallback, else the code itself."""
    return DEPARTURE_AIRPORTS.get(iata) or fallback or iata


__all__ = ["PHILIPPINE_AIRPORTS", "DEPARTURE_AIRPORTS", "airport_name"]
