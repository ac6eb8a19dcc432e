"""
Pydantic models for upstream payloads and API responses.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DayData(CamelModel):
    """One day of the rolling daily series."""

    date: str
    max_temp: Optional[int] = None
    min_temp: Optional[int] = None
    condition_code: Optional[int] = None


class WeatherResponse(CamelModel):
    """Aggregated current conditions and daily series for one location."""

    city: str
    country: Optional[str] = None
    temp: int
    condition: str
    condition_code: int
    humidity: int
    wind_speed: int
    uv_index: float
    feels_like: int
    approximated_fields: List[str] = Field(default_factory=lambda: ["feelsLike"])
    past: List[DayData] = Field(default_factory=list)
    future: List[DayData] = Field(default_factory=list)
    cached: bool = False


class CitySuggestion(BaseModel):
    """Response model for a city search suggestion."""

    name: str
    admin1: Optional[str] = None
    country: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    cache: str


class CacheClearResponse(BaseModel):
    message: str
    timestamp: str
    cleared: int


class ErrorResponse(BaseModel):
    """Response model for error cases."""

    error: str
    message: str
    status_code: int


# Upstream (Open-Meteo) payloads


class GeocodingResult(BaseModel):
    """A single entry of the geocoding search results."""

    name: str
    latitude: float
    longitude: float
    country: Optional[str] = None
    admin1: Optional[str] = None


class ForecastCurrent(BaseModel):
    temperature_2m: float
    weather_code: int
    relative_humidity_2m: int
    wind_speed_10m: float
    uv_index: Optional[float] = None


class ForecastDaily(BaseModel):
    time: List[str]
    weather_code: List[Optional[int]]
    temperature_2m_max: List[Optional[float]]
    temperature_2m_min: List[Optional[float]]


class OpenMeteoForecast(BaseModel):
    """Model for the Open-Meteo forecast response."""

    utc_offset_seconds: int = 0
    timezone: Optional[str] = None
    current: ForecastCurrent
    daily: ForecastDaily
