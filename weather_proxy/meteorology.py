"""
Derived meteorological fields and WMO code labels.

All temperatures are in Celsius and wind speeds in km/h at the boundaries of
this module; the formulas themselves work in Fahrenheit and mph.
"""

import math
from datetime import date
from typing import Iterable, List, Optional, Tuple

from weather_proxy.models import DayData

KMH_PER_MPH = 1.60934

# Rothfusz regression coefficients (Fahrenheit, relative humidity in %)
HEAT_INDEX_COEFFICIENTS = (
    -42.379,
    2.04901523,
    10.14333127,
    -0.22475541,
    -0.00683783,
    -0.05481717,
    0.00122874,
    0.00085282,
    -0.00000199,
)

WIND_CHILL_MAX_TEMP_C = 10.0
HEAT_INDEX_MIN_TEMP_C = 26.7
HEAT_INDEX_MIN_HUMIDITY = 40


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return int(math.floor(value + 0.5))


def celsius_to_fahrenheit(temp_c: float) -> float:
    return temp_c * 9 / 5 + 32


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32) * 5 / 9


def wind_chill(temp_c: float, wind_speed_kmh: float) -> Optional[int]:
    """
    Compute the NWS wind chill.

    Args:
        temp_c: Air temperature in Celsius
        wind_speed_kmh: Wind speed at 10 m in km/h

    Returns:
        Rounded wind chill in Celsius, or None above 10°C
    """
    if temp_c > WIND_CHILL_MAX_TEMP_C:
        return None

    temp_f = celsius_to_fahrenheit(temp_c)
    wind_factor = (wind_speed_kmh / KMH_PER_MPH) ** 0.16
    chill_f = 35.74 + 0.6215 * temp_f - 35.75 * wind_factor + 0.4275 * temp_f * wind_factor
    return round_half_up(fahrenheit_to_celsius(chill_f))


def heat_index(temp_c: float, humidity: float) -> Optional[int]:
    """
    Compute the Rothfusz heat index.

    Args:
        temp_c: Air temperature in Celsius
        humidity: Relative humidity in percent

    Returns:
        Rounded heat index in Celsius, or None below 26.7°C or 40% humidity
    """
    if temp_c < HEAT_INDEX_MIN_TEMP_C or humidity < HEAT_INDEX_MIN_HUMIDITY:
        return None

    t = celsius_to_fahrenheit(temp_c)
    rh = humidity
    c1, c2, c3, c4, c5, c6, c7, c8, c9 = HEAT_INDEX_COEFFICIENTS
    index_f = (
        c1
        + c2 * t
        + c3 * rh
        + c4 * t * rh
        + c5 * t * t
        + c6 * rh * rh
        + c7 * t * t * rh
        + c8 * t * rh * rh
        + c9 * t * t * rh * rh
    )
    return round_half_up(fahrenheit_to_celsius(index_f))


def feels_like(temp_c: float, wind_speed_kmh: float, humidity: float) -> int:
    """Wind chill when cold, heat index when hot and humid, else the air temperature."""
    chill = wind_chill(temp_c, wind_speed_kmh)
    if chill is not None:
        return chill

    index = heat_index(temp_c, humidity)
    if index is not None:
        return index

    return round_half_up(temp_c)


def describe_weather_code(code: Optional[int]) -> str:
    """Map a WMO weather code to a display label."""
    if code is None:
        return "Unknown"
    if code in (0, 1):
        return "Clear"
    if code == 2:
        return "Partly Cloudy"
    if code == 3:
        return "Overcast"
    if code in (45, 48):
        return "Foggy"
    if 51 <= code <= 67:
        return "Drizzle"
    if 71 <= code <= 77:
        return "Snow"
    if 80 <= code <= 82:
        return "Rain"
    if code in (83, 84):
        return "Extreme Rain"
    if 85 <= code <= 86:
        return "Heavy Snow"
    if 87 <= code <= 94:
        return "Mixed Precipitation"
    if 95 <= code <= 99:
        return "Thunderstorm"
    return "Unknown"


def partition_days(
    days: Iterable[DayData], today: date
) -> Tuple[List[DayData], List[DayData]]:
    """
    Split a daily series into days before today and the rest.

    Args:
        days: Daily entries with ISO dates, in series order
        today: Reference date (the location's local date)

    Returns:
        Tuple of (past, future); today belongs to future
    """
    past: List[DayData] = []
    future: List[DayData] = []
    for day in days:
        if date.fromisoformat(day.date[:10]) < today:
            past.append(day)
        else:
            future.append(day)
    return past, future
