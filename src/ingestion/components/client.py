"""
AeroDataBox API client for fetching airport flight schedules.

Provides methods to fetch departures and arrivals of one airport within a
local-time window of at most 12 hours.
Documentation: https://doc.aerodatabox.com/
"""

from datetime import datetime, timedelta
from typing import Any, Callable

import httpx

from src.utils import logger
from src.utils.exceptions import (
    UpstreamError,
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    MissingConfigError,
)
from src.ingestion.config import settings


WINDOW_FORMAT = "%Y-%m-%dT%H:%M"

# Fixed query flags of the airport schedule endpoint
QUERY_FLAGS = {
    "withLeg": "true",
    "direction": "Both",
    "withCancelled": "true",
    "withCodeshared": "true",
    "withCargo": "true",
    "withPrivate": "true",
    "withLocation": "false",
}


class AeroDataBoxClient:
    """
    Client for the AeroDataBox airport schedule API (via RapidAPI).

    The API returns, for one airport and a local-time window:
    - ``departures``: flights leaving the airport
    - ``arrivals``: flights landing at the airport

    Windows longer than ``max_window_minutes`` are rejected upstream, so
    callers split longer ranges first.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        max_window_minutes: int | None = None,
        transport: httpx.BaseTransport | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the AeroDataBox client.

        Args:
            base_url: API base URL (defaults to settings)
            api_key: RapidAPI key
            host: RapidAPI host header value
            timeout: Request timeout in seconds
            max_window_minutes: Longest window accepted upstream
            transport: Custom httpx transport (tests)
            now_fn: Clock used to anchor relative windows
        """
        self.base_url = (base_url or settings.aerodatabox.base_url).rstrip("/")
        self.api_key = api_key or settings.aerodatabox.api_key
        self.host = host or settings.aerodatabox.host
        self.timeout = timeout or settings.aerodatabox.timeout_seconds
        self.max_window_minutes = max_window_minutes or settings.aerodatabox.max_window_minutes
        self._transport = transport
        self._now = now_fn or datetime.now

        if not self.api_key:
            logger.warning("AeroDataBox client initialized without an API key; requests will fail")
        else:
            logger.info("AeroDataBox client initialized")

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise MissingConfigError("AERODATABOX_API_KEY")
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
        }

    def _make_request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Make a request to the AeroDataBox API.

        Args:
            endpoint: API endpoint path
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            MissingConfigError: When no API key is configured
            UpstreamError: On non-2xx responses
            RateLimitError: When rate limit exceeded
            APIConnectionError: On connection failures
            APITimeoutError: On request timeout
        """
        url = f"{self.base_url}{endpoint}"
        headers = self._headers()

        try:
            logger.debug(f"Making request to {url}")

            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url, params=params, headers=headers)

            # Handle rate limiting
            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                raise RateLimitError(
                    message="AeroDataBox API rate limit exceeded",
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                    response_body=response.text,
                )

            # Handle other errors
            if not response.is_success:
                raise UpstreamError(
                    message=f"API request failed: {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            # No flights in the window
            if response.status_code == 204 or not response.content:
                return {"departures": [], "arrivals": []}

            data = response.json()
            data.setdefault("departures", [])
            data.setdefault("arrivals", [])
            logger.debug(
                f"Received {len(data['departures'])} departures and "
                f"{len(data['arrivals'])} arrivals"
            )
            return data

        except httpx.ConnectError as e:
            raise APIConnectionError(f"Failed to connect to AeroDataBox API: {e}")
        except httpx.TimeoutException as e:
            raise APITimeoutError(f"Request to AeroDataBox API timed out: {e}", timeout=self.timeout)
        except httpx.HTTPError as e:
            raise UpstreamError(f"HTTP error occurred: {e}")
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from AeroDataBox API: {e}")

    def fetch_range(
        self,
        departure_iata: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        """
        Get departures and arrivals of an airport in an absolute local window.

        Args:
            departure_iata: IATA code of the airport
            start: Window start (airport local time)
            end: Window end (airport local time)

        Returns:
            Response containing 'departures' and 'arrivals' lists
        """
        minutes = (end - start).total_seconds() / 60
        if minutes > self.max_window_minutes:
            logger.warning(
                f"Window of {minutes:.0f} minutes exceeds {self.max_window_minutes}, "
                "API may reject the request"
            )

        endpoint = (
            f"/flights/airports/iata/{departure_iata.upper()}/"
            f"{start.strftime(WINDOW_FORMAT)}/{end.strftime(WINDOW_FORMAT)}"
        )

        logger.info(f"Fetching flights at {departure_iata} from {start:%Y-%m-%d %H:%M} to {end:%Y-%m-%d %H:%M}")
        return self._make_request(endpoint, dict(QUERY_FLAGS))

    def fetch_window(
        self,
        departure_iata: str,
        offset_minutes: int,
        duration_minutes: int,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Get departures and arrivals of an airport in a window relative to now.

        The window is centred on ``now + offset_minutes`` and spans
        ``duration_minutes`` (capped at the provider maximum). ``now`` is
        truncated to the minute.

        Args:
            departure_iata: IATA code of the airport
            offset_minutes: Minutes from now to the window midpoint
            duration_minutes: Window length in minutes
            now: Anchor the offset was computed against (default: the client clock)

        Returns:
            Response containing 'departures' and 'arrivals' lists
        """
        duration_minutes = min(duration_minutes, self.max_window_minutes)
        anchor = (now or self._now()).replace(second=0, microsecond=0)
        midpoint = anchor + timedelta(minutes=offset_minutes)
        start = midpoint - timedelta(minutes=duration_minutes // 2)
        end = start + timedelta(minutes=duration_minutes)
        return self.fetch_range(departure_iata, start, end)


def create_client() -> AeroDataBoxClient:
    """Create a new AeroDataBox client with default settings."""
    return AeroDataBoxClient()


__all__ = ["AeroDataBoxClient", "create_client", "QUERY_FLAGS"]
