"""
Configuration constants for the weather proxy service.
"""

import os


class RetryConfig:
    """Retry configuration for resilient operations"""

    # Upstream API retry configuration
    API_MAX_ATTEMPTS = 3
    API_BASE_DELAY = 1.0
    API_BACKOFF_MULTIPLIER = 2.0
    API_MAX_DELAY = 30.0
    API_JITTER = True
    API_JITTER_RANGE = 0.1

    # DynamoDB retry configuration
    DYNAMODB_MAX_ATTEMPTS = 3
    DYNAMODB_BASE_DELAY = 0.5
    DYNAMODB_BACKOFF_MULTIPLIER = 2.0
    DYNAMODB_MAX_DELAY = 10.0
    DYNAMODB_JITTER = True
    DYNAMODB_JITTER_RANGE = 0.1


class ExternalAPIConfig:
    """Open-Meteo and reverse geocoding configuration"""

    FORECAST_BASE_URL = os.getenv("OPEN_METEO_API", "https://api.open-meteo.com/v1")
    GEOCODING_BASE_URL = os.getenv(
        "OPEN_METEO_GEO_API", "https://geocoding-api.open-meteo.com/v1"
    )
    REVERSE_GEOCODING_URL = os.getenv(
        "REVERSE_GEOCODING_URL", "https://nominatim.openstreetmap.org/reverse"
    )
    USER_AGENT = os.getenv("USER_AGENT", "weather-proxy/1.0")
    REQUEST_TIMEOUT = int(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))

    CURRENT_FIELDS = (
        "temperature_2m,weather_code,relative_humidity_2m,wind_speed_10m,uv_index"
    )
    DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min"
    FORECAST_DAYS = int(os.getenv("FORECAST_DAYS", "16"))
    PAST_DAYS = int(os.getenv("PAST_DAYS", "7"))

    CITY_SUGGESTION_COUNT = 5
    MIN_QUERY_LENGTH = 2


class AppConfig:
    """Service-level configuration"""

    ENV = os.getenv("ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "3000"))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

    # Bearer token guarding the admin endpoints
    ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "dev-admin-key")

    # Cache configuration
    CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory")
    CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "600"))
    CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "1024"))
    DYNAMODB_TABLE_NAME = os.getenv("DYNAMODB_TABLE_NAME", "")
    AWS_REGION = os.getenv("AWS_REGION", "ap-northeast-2")
