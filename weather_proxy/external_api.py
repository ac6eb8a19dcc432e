"""
External API client for the Open-Meteo geocoding and forecast services.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from weather_proxy.config import ExternalAPIConfig, RetryConfig
from weather_proxy.models import GeocodingResult, OpenMeteoForecast
from weather_proxy.retry_service import (
    RetryConfig as RetryConfigClass,
    RetryError,
    api_retry,
)

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"


class WeatherAPIError(Exception):
    """Custom exception for upstream weather API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class OpenMeteoClient:
    """
    Asynchronous client for Open-Meteo with retry logic.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        retry_config: Optional[RetryConfigClass] = None,
    ):
        """
        Initialize the Open-Meteo client.

        Args:
            timeout: Request timeout in seconds (defaults to config value)
            retry_config: Backoff parameters (defaults to config values)
        """
        self.forecast_url = f"{ExternalAPIConfig.FORECAST_BASE_URL}/forecast"
        self.search_url = f"{ExternalAPIConfig.GEOCODING_BASE_URL}/search"
        self.reverse_url = ExternalAPIConfig.REVERSE_GEOCODING_URL
        self.timeout = aiohttp.ClientTimeout(
            total=timeout or ExternalAPIConfig.REQUEST_TIMEOUT
        )
        self.headers = {"User-Agent": ExternalAPIConfig.USER_AGENT}

        self.retry_config = retry_config or RetryConfigClass(
            max_attempts=RetryConfig.API_MAX_ATTEMPTS,
            base_delay=RetryConfig.API_BASE_DELAY,
            backoff_multiplier=RetryConfig.API_BACKOFF_MULTIPLIER,
            max_delay=RetryConfig.API_MAX_DELAY,
            jitter=RetryConfig.API_JITTER,
            jitter_range=RetryConfig.API_JITTER_RANGE,
        )

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document with retry logic.

        Raises:
            WeatherAPIError: On 4xx responses
            RetryError: When 5xx responses or network errors persist
        """

        @api_retry(self.retry_config)
        async def _get_json_with_retry() -> Dict[str, Any]:
            async with aiohttp.ClientSession(
                timeout=self.timeout, headers=self.headers
            ) as session:
                logger.debug("Requesting %s with %s", url, params)

                async with session.get(url, params=params) as response:
                    if response.status == 200:
                        return await response.json(content_type=None)

                    try:
                        body = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError):
                        body = {}
                    error_msg = (body or {}).get("reason") or "Unknown API error"
                    logger.error(
                        "Upstream error for %s: %s (status: %d)",
                        url,
                        error_msg,
                        response.status,
                    )

                    if 500 <= response.status < 600:
                        raise aiohttp.ClientResponseError(
                            request_info=response.request_info,
                            history=(),
                            status=response.status,
                            message=error_msg,
                        )

                    raise WeatherAPIError(error_msg, status_code=response.status)

        return await _get_json_with_retry()

    async def search_locations(self, name: str, count: int = 1) -> List[GeocodingResult]:
        """
        Search the geocoding API by place name.

        Args:
            name: Free-text place name
            count: Maximum number of results

        Returns:
            List of matches, empty when nothing was found or the name is blank
        """
        if not name or not name.strip():
            logger.debug("Skipping geocoding for blank name %r", name)
            return []

        data = await self._get_json(
            self.search_url,
            {"name": name.strip(), "count": count, "language": "en", "format": "json"},
        )
        results = [GeocodingResult(**item) for item in data.get("results") or []]
        logger.debug("Geocoding '%s' returned %d results", name, len(results))
        return results

    async def get_forecast(self, latitude: float, longitude: float) -> OpenMeteoForecast:
        """
        Fetch current conditions and the daily series for a coordinate.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            OpenMeteoForecast: Parsed forecast payload
        """
        data = await self._get_json(
            self.forecast_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": ExternalAPIConfig.CURRENT_FIELDS,
                "daily": ExternalAPIConfig.DAILY_FIELDS,
                "timezone": "auto",
                "forecast_days": ExternalAPIConfig.FORECAST_DAYS,
                "past_days": ExternalAPIConfig.PAST_DAYS,
            },
        )
        return OpenMeteoForecast(**data)

    async def reverse_geocode(self, latitude: float, longitude: float) -> str:
        """
        Resolve a coordinate to a city or town name.

        Returns:
            The city, else the town, else "Unknown Location". Lookup failures
            also yield "Unknown Location".
        """
        try:
            data = await self._get_json(
                self.reverse_url,
                {"lat": latitude, "lon": longitude, "format": "json"},
            )
        except (WeatherAPIError, RetryError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "Reverse geocoding failed for (%s, %s): %s", latitude, longitude, e
            )
            return UNKNOWN_LOCATION

        address = data.get("address") or {}
        return address.get("city") or address.get("town") or UNKNOWN_LOCATION
