"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from weather_proxy.cache_service import InMemoryCacheService
from weather_proxy.models import GeocodingResult, OpenMeteoForecast
from weather_proxy.weather_service import WeatherService

FIXED_NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-01-10 12:00 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def geocoding_payload() -> dict:
    """Open-Meteo geocoding search response."""
    return {
        "results": [
            {
                "id": 2643743,
                "name": "London",
                "latitude": 51.50853,
                "longitude": -0.12574,
                "country": "United Kingdom",
                "admin1": "England",
            }
        ],
        "generationtime_ms": 0.7,
    }


@pytest.fixture
def forecast_payload() -> dict:
    """Open-Meteo forecast response: cold and windy, 3 past days and 4 future days."""
    return {
        "latitude": 51.5,
        "longitude": -0.12,
        "utc_offset_seconds": 0,
        "timezone": "Europe/London",
        "current": {
            "time": "2024-01-10T12:00",
            "temperature_2m": 5.0,
            "weather_code": 3,
            "relative_humidity_2m": 80,
            "wind_speed_10m": 20.4,
            "uv_index": 1.26,
        },
        "daily": {
            "time": [
                "2024-01-07",
                "2024-01-08",
                "2024-01-09",
                "2024-01-10",
                "2024-01-11",
                "2024-01-12",
                "2024-01-13",
            ],
            "weather_code": [61, 3, 2, 3, 80, 0, None],
            "temperature_2m_max": [8.4, 7.5, 6.1, 6.6, 9.2, 10.5, None],
            "temperature_2m_min": [2.2, 1.5, -0.5, 0.4, 3.3, 4.8, None],
        },
    }


@pytest.fixture
def mock_api_client(geocoding_payload, forecast_payload) -> MagicMock:
    """Upstream client returning the sample payloads."""
    client = MagicMock()
    client.search_locations = AsyncMock(
        return_value=[GeocodingResult(**r) for r in geocoding_payload["results"]]
    )
    client.get_forecast = AsyncMock(
        return_value=OpenMeteoForecast(**forecast_payload)
    )
    client.reverse_geocode = AsyncMock(return_value="Westminster")
    return client


@pytest.fixture
def memory_cache() -> InMemoryCacheService:
    return InMemoryCacheService(ttl_seconds=600, max_entries=16)


@pytest.fixture
def weather_service(mock_api_client, memory_cache, fixed_clock) -> WeatherService:
    return WeatherService(
        api_client=mock_api_client, cache_service=memory_cache, clock=fixed_clock
    )
