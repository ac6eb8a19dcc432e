"""
Tests for the weather service: aggregation, caching and response shaping.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from weather_proxy.external_api import WeatherAPIError
from weather_proxy.models import OpenMeteoForecast
from weather_proxy.weather_service import LocationNotFoundError, WeatherService


class TestWeatherByCity:
    def test_aggregates_geocoding_and_forecast(self, weather_service, mock_api_client):
        response = asyncio.run(weather_service.get_weather_by_city("london"))

        assert response.city == "London"
        assert response.country == "United Kingdom"
        assert response.temp == 5
        assert response.condition == "Overcast"
        assert response.condition_code == 3
        assert response.humidity == 80
        assert response.wind_speed == 20
        assert response.uv_index == 1.3
        assert response.feels_like == 1
        assert response.approximated_fields == ["feelsLike"]
        assert response.cached is False

        mock_api_client.search_locations.assert_awaited_once_with("london", count=1)
        mock_api_client.get_forecast.assert_awaited_once_with(51.50853, -0.12574)

    def test_splits_daily_series_around_today(self, weather_service):
        response = asyncio.run(weather_service.get_weather_by_city("London"))

        assert [d.date for d in response.past] == [
            "2024-01-07",
            "2024-01-08",
            "2024-01-09",
        ]
        assert [d.date for d in response.future] == [
            "2024-01-10",
            "2024-01-11",
            "2024-01-12",
            "2024-01-13",
        ]
        assert response.past[2].min_temp == 0
        assert response.future[0].max_temp == 7
        assert response.future[-1].max_temp is None
        assert response.future[-1].condition_code is None

    def test_second_call_is_served_from_cache(self, weather_service, mock_api_client):
        first = asyncio.run(weather_service.get_weather_by_city("London"))
        second = asyncio.run(weather_service.get_weather_by_city("London"))

        assert first.cached is False
        assert second.cached is True
        assert second.model_dump(exclude={"cached"}) == first.model_dump(
            exclude={"cached"}
        )
        assert mock_api_client.get_forecast.await_count == 1

    def test_cached_entry_is_not_mutated(self, weather_service, memory_cache):
        asyncio.run(weather_service.get_weather_by_city("London"))
        asyncio.run(weather_service.get_weather_by_city("London"))

        stored = asyncio.run(memory_cache.get("city:London"))
        assert stored.cached is False

    def test_unknown_city_raises_not_found(self, weather_service, mock_api_client):
        mock_api_client.search_locations.return_value = []

        with pytest.raises(LocationNotFoundError) as exc_info:
            asyncio.run(weather_service.get_weather_by_city("Atlantis"))

        assert exc_info.value.status_code == 404
        mock_api_client.get_forecast.assert_not_awaited()

    def test_upstream_failure_is_not_cached(self, weather_service, mock_api_client, memory_cache):
        mock_api_client.get_forecast.side_effect = WeatherAPIError("down", 500)

        with pytest.raises(WeatherAPIError):
            asyncio.run(weather_service.get_weather_by_city("London"))

        assert asyncio.run(memory_cache.get("city:London")) is None


class TestWeatherByCoords:
    def test_uses_reverse_geocoded_name(self, weather_service, mock_api_client):
        response = asyncio.run(weather_service.get_weather_by_coords(51.5, -0.12))

        assert response.city == "Westminster"
        assert response.country is None
        mock_api_client.reverse_geocode.assert_awaited_once_with(51.5, -0.12)
        mock_api_client.get_forecast.assert_awaited_once_with(51.5, -0.12)

    def test_cached_per_coordinate(self, weather_service, mock_api_client):
        asyncio.run(weather_service.get_weather_by_coords(51.5, -0.12))
        again = asyncio.run(weather_service.get_weather_by_coords(51.5, -0.12))
        other = asyncio.run(weather_service.get_weather_by_coords(48.85, 2.35))

        assert again.cached is True
        assert other.cached is False
        assert mock_api_client.get_forecast.await_count == 2


class TestSearchCities:
    @pytest.mark.parametrize("query", [None, "", "L"])
    def test_short_queries_skip_upstream(self, weather_service, mock_api_client, query):
        assert asyncio.run(weather_service.search_cities(query)) == []
        mock_api_client.search_locations.assert_not_awaited()

    def test_returns_suggestions(self, weather_service, mock_api_client):
        suggestions = asyncio.run(weather_service.search_cities("Lon"))

        assert [s.model_dump() for s in suggestions] == [
            {"name": "London", "admin1": "England", "country": "United Kingdom"}
        ]
        mock_api_client.search_locations.assert_awaited_once_with("Lon", count=5)


class TestClearCache:
    def test_clear_empties_cache(self, weather_service, mock_api_client):
        asyncio.run(weather_service.get_weather_by_city("London"))
        asyncio.run(weather_service.get_weather_by_coords(51.5, -0.12))

        assert asyncio.run(weather_service.clear_cache()) == 2

        response = asyncio.run(weather_service.get_weather_by_city("London"))
        assert response.cached is False
        assert mock_api_client.get_forecast.await_count == 3


class TestLocalToday:
    def test_uses_location_utc_offset(self, forecast_payload, mock_api_client, memory_cache):
        late_evening_utc = datetime(2024, 1, 10, 23, 30, tzinfo=timezone.utc)
        service = WeatherService(
            api_client=mock_api_client,
            cache_service=memory_cache,
            clock=lambda: late_evening_utc,
        )

        forecast_payload["utc_offset_seconds"] = 9 * 3600
        tokyo = OpenMeteoForecast(**forecast_payload)
        forecast_payload["utc_offset_seconds"] = -5 * 3600
        new_york = OpenMeteoForecast(**forecast_payload)

        assert service.local_today(tokyo).isoformat() == "2024-01-11"
        assert service.local_today(new_york).isoformat() == "2024-01-10"

        response = service.build_response(tokyo, "Tokyo", "Japan")
        assert response.future[0].date == "2024-01-11"
        assert len(response.past) == 4
