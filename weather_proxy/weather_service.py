"""
Weather service layer with caching and response shaping.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from weather_proxy.cache_service import (
    CacheError,
    city_cache_key,
    coords_cache_key,
    create_cache_service,
)
from weather_proxy.config import ExternalAPIConfig
from weather_proxy.external_api import OpenMeteoClient, WeatherAPIError
from weather_proxy.meteorology import (
    describe_weather_code,
    feels_like,
    partition_days,
    round_half_up,
)
from weather_proxy.models import (
    CitySuggestion,
    DayData,
    OpenMeteoForecast,
    WeatherResponse,
)

logger = logging.getLogger(__name__)


class LocationNotFoundError(WeatherAPIError):
    """Raised when geocoding returns no match."""

    def __init__(self, query: str):
        super().__init__(f"Location '{query}' not found", status_code=404)
        self.query = query


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherService:
    """
    Aggregates geocoding and forecast lookups into a single response.
    """

    def __init__(
        self,
        api_client: Optional[OpenMeteoClient] = None,
        cache_service=None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Args:
            api_client: Upstream client (a default one is created if omitted)
            cache_service: Cache backend (the configured one if omitted)
            clock: Returns the current UTC time
        """
        self.api_client = api_client or OpenMeteoClient()
        self.cache_service = cache_service or create_cache_service()
        self.clock = clock

    async def get_weather_by_city(self, city: str) -> WeatherResponse:
        """
        Get weather for a place name.

        Raises:
            LocationNotFoundError: If geocoding finds no match
            WeatherAPIError: If upstream data cannot be retrieved
        """
        cache_key = city_cache_key(city)
        cached = await self._get_cached(cache_key)
        if cached:
            return cached

        locations = await self.api_client.search_locations(city, count=1)
        if not locations:
            raise LocationNotFoundError(city)

        location = locations[0]
        forecast = await self.api_client.get_forecast(
            location.latitude, location.longitude
        )
        response = self.build_response(forecast, location.name, location.country)

        await self._store(cache_key, response)
        return response

    async def get_weather_by_coords(
        self, latitude: float, longitude: float
    ) -> WeatherResponse:
        """Get weather for a coordinate, named by reverse geocoding."""
        cache_key = coords_cache_key(latitude, longitude)
        cached = await self._get_cached(cache_key)
        if cached:
            return cached

        city_name = await self.api_client.reverse_geocode(latitude, longitude)
        forecast = await self.api_client.get_forecast(latitude, longitude)
        response = self.build_response(forecast, city_name)

        await self._store(cache_key, response)
        return response

    async def search_cities(self, query: Optional[str]) -> List[CitySuggestion]:
        """City suggestions for autocomplete; short queries yield nothing."""
        if not query or len(query) < ExternalAPIConfig.MIN_QUERY_LENGTH:
            return []

        results = await self.api_client.search_locations(
            query, count=ExternalAPIConfig.CITY_SUGGESTION_COUNT
        )
        return [
            CitySuggestion(name=r.name, admin1=r.admin1, country=r.country)
            for r in results
        ]

    async def clear_cache(self) -> int:
        removed = await self.cache_service.clear()
        logger.info("Cleared %d cache entries", removed)
        return removed

    async def cache_healthy(self) -> bool:
        return await self.cache_service.health_check()

    def local_today(self, forecast: OpenMeteoForecast) -> date:
        """The current date at the forecast location."""
        offset = timedelta(seconds=forecast.utc_offset_seconds)
        return (self.clock() + offset).date()

    def build_response(
        self,
        forecast: OpenMeteoForecast,
        city: str,
        country: Optional[str] = None,
    ) -> WeatherResponse:
        """
        Shape an Open-Meteo forecast into the API response.

        Args:
            forecast: Upstream forecast payload
            city: Display name of the location
            country: Country name, when known

        Returns:
            WeatherResponse: Current conditions plus past/future daily series
        """
        current = forecast.current
        daily = forecast.daily

        days = [
            DayData(
                date=day,
                max_temp=_round_or_none(max_temp),
                min_temp=_round_or_none(min_temp),
                condition_code=code,
            )
            for day, max_temp, min_temp, code in zip(
                daily.time,
                daily.temperature_2m_max,
                daily.temperature_2m_min,
                daily.weather_code,
            )
        ]
        past, future = partition_days(days, self.local_today(forecast))

        return WeatherResponse(
            city=city,
            country=country,
            temp=round_half_up(current.temperature_2m),
            condition=describe_weather_code(current.weather_code),
            condition_code=current.weather_code,
            humidity=current.relative_humidity_2m,
            wind_speed=round_half_up(current.wind_speed_10m),
            uv_index=round_half_up((current.uv_index or 0.0) * 10) / 10,
            feels_like=feels_like(
                current.temperature_2m,
                current.wind_speed_10m,
                current.relative_humidity_2m,
            ),
            past=past,
            future=future,
        )

    async def _get_cached(self, cache_key: str) -> Optional[WeatherResponse]:
        try:
            cached = await self.cache_service.get(cache_key)
        except CacheError as e:
            logger.warning("Cache read failed for %s: %s", cache_key, e)
            return None
        if cached is None:
            return None
        return cached.model_copy(update={"cached": True})

    async def _store(self, cache_key: str, response: WeatherResponse) -> None:
        try:
            await self.cache_service.set(cache_key, response)
        except CacheError as e:
            logger.warning("Cache write failed for %s: %s", cache_key, e)


def _round_or_none(value: Optional[float]) -> Optional[int]:
    return None if value is None else round_half_up(value)
