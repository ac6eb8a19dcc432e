"""
FastAPI application for the weather proxy, with an AWS Lambda handler.
"""

import hmac
import logging
import math
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from mangum import Mangum

from weather_proxy.config import AppConfig
from weather_proxy.models import (
    CacheClearResponse,
    CitySuggestion,
    HealthResponse,
    WeatherResponse,
)
from weather_proxy.weather_service import LocationNotFoundError, WeatherService

# Configure logging
logging.basicConfig(
    level=AppConfig.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

admin_auth_header = APIKeyHeader(name="Authorization", auto_error=False)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@lru_cache(maxsize=1)
def get_weather_service() -> WeatherService:
    """Process-wide service so every request shares one cache."""
    return WeatherService()


def require_admin(authorization: Optional[str] = Security(admin_auth_header)) -> str:
    """Validate the admin bearer token from the Authorization header."""
    if not authorization:
        raise HTTPException(
            status_code=401, detail="Unauthorized: Missing authorization header"
        )

    token = authorization.replace("Bearer ", "", 1)
    if not hmac.compare_digest(
        token.encode("utf-8"), AppConfig.ADMIN_API_KEY.encode("utf-8")
    ):
        raise HTTPException(status_code=403, detail="Forbidden: Invalid API key")

    return token


def parse_coordinates(lat: Optional[str], lon: Optional[str]) -> Tuple[float, float]:
    """
    Parse and range-check query coordinates.

    Raises:
        HTTPException: 400 with the reason the coordinates were rejected
    """
    if lat is None or lon is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude required")

    try:
        latitude = float(lat)
        longitude = float(lon)
    except ValueError as e:
        raise HTTPException(
            status_code=400, detail="Invalid latitude or longitude: must be numeric"
        ) from e

    if not math.isfinite(latitude) or not math.isfinite(longitude):
        raise HTTPException(
            status_code=400, detail="Invalid latitude or longitude: must be numeric"
        )

    if not -90 <= latitude <= 90:
        raise HTTPException(
            status_code=400, detail="Invalid latitude: must be between -90 and 90"
        )

    if not -180 <= longitude <= 180:
        raise HTTPException(
            status_code=400, detail="Invalid longitude: must be between -180 and 180"
        )

    return latitude, longitude


# Initialize FastAPI app
app = FastAPI(
    title="Weather Proxy",
    description="Aggregating proxy for Open-Meteo geocoding and forecasts",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=AppConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "service": "Weather Proxy",
        "version": "1.0.0",
        "status": "active",
        "endpoints": {
            "health_check": "/api/health",
            "weather_by_city": "/api/weather/city/{city}",
            "weather_by_coords": "/api/weather/coords?lat=LAT&lon=LON",
            "city_search": "/api/cities/search?q=QUERY",
            "cache_clear": "/api/cache/clear",
            "documentation": "/docs",
        },
    }


@app.get("/api/health", response_model=HealthResponse)
async def health_check(service: WeatherService = Depends(get_weather_service)):
    """Liveness plus the state of the response cache."""
    cache_healthy = await service.cache_healthy()
    return HealthResponse(
        status="ok",
        timestamp=_utc_timestamp(),
        cache="healthy" if cache_healthy else "unhealthy",
    )


@app.get("/api/weather/city/{city}", response_model=WeatherResponse)
async def get_weather_by_city(
    city: str, service: WeatherService = Depends(get_weather_service)
):
    """
    Get current conditions and the daily series for a city.

    Raises:
        HTTPException: 404 if the city is unknown, 500 on upstream failure
    """
    try:
        return await service.get_weather_by_city(city)

    except LocationNotFoundError as e:
        logger.info("City not found: %s", city)
        raise HTTPException(status_code=404, detail="City not found") from e

    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Weather API Error for %s: %s", city, e)
        raise HTTPException(
            status_code=500, detail="Failed to fetch weather data"
        ) from e


@app.get("/api/weather/coords", response_model=WeatherResponse)
async def get_weather_by_coords(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
    service: WeatherService = Depends(get_weather_service),
):
    """Get current conditions and the daily series for a coordinate."""
    latitude, longitude = parse_coordinates(lat, lon)

    try:
        return await service.get_weather_by_coords(latitude, longitude)

    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Weather API Error for (%s, %s): %s", latitude, longitude, e)
        raise HTTPException(
            status_code=500, detail="Failed to fetch weather data"
        ) from e


@app.get("/api/cities/search", response_model=List[CitySuggestion])
async def search_cities(
    q: Optional[str] = Query(None),
    service: WeatherService = Depends(get_weather_service),
):
    """City name suggestions; queries shorter than two characters return []."""
    try:
        return await service.search_cities(q)

    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Geocoding Error for '%s': %s", q, e)
        raise HTTPException(
            status_code=500, detail="Failed to fetch suggestions"
        ) from e


@app.post("/api/cache/clear", response_model=CacheClearResponse)
async def clear_cache(
    request: Request,
    _token: str = Security(require_admin),
    service: WeatherService = Depends(get_weather_service),
):
    """Flush the response cache. Requires the admin bearer token."""
    remote_addr = request.client.host if request.client else "unknown"
    timestamp = _utc_timestamp()
    logger.info("[AUDIT] Cache cleared by %s at %s", remote_addr, timestamp)

    cleared = await service.clear_cache()
    return CacheClearResponse(
        message="Cache cleared", timestamp=timestamp, cleared=cleared
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):  # pylint: disable=unused-argument
    """Global exception handler for unhandled errors."""
    logger.error("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "status_code": 500,
        },
    )


# AWS Lambda handler using Mangum
lambda_handler = Mangum(app, lifespan="off")
