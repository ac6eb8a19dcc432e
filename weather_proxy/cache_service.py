"""
Response caches for aggregated weather data.

Two backends share one async interface (get/set/clear/health_check):
an in-process TTL cache and a DynamoDB table for deployments where process
memory is not shared between instances.
"""

import logging
import os
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError
from cachetools import TTLCache

from weather_proxy.config import AppConfig, RetryConfig
from weather_proxy.models import WeatherResponse
from weather_proxy.retry_service import (
    RetryConfig as RetryConfigClass,
    RetryError,
    dynamodb_retry,
)

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base exception for cache-related errors."""


def city_cache_key(city: str) -> str:
    return f"city:{city}"


def coords_cache_key(latitude: float, longitude: float) -> str:
    return f"coords:{latitude}:{longitude}"


class InMemoryCacheService:
    """
    Process-wide TTL cache backed by cachetools.

    Entries expire ``ttl_seconds`` after they are written; the oldest entries
    are evicted once ``max_entries`` is reached.
    """

    backend = "memory"

    def __init__(self, ttl_seconds: int = 600, max_entries: int = 1024, timer=None):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._cache = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer or time.monotonic
        )
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[WeatherResponse]:
        with self._lock:
            value = self._cache.get(key)
        if value is None:
            logger.debug("Cache miss for %s", key)
            return None
        logger.debug("Cache hit for %s", key)
        return value

    async def set(self, key: str, value: WeatherResponse) -> bool:
        with self._lock:
            self._cache[key] = value
        logger.debug("Cached %s for %d seconds", key, self.ttl_seconds)
        return True

    async def clear(self) -> int:
        """Drop every entry and return how many were live."""
        with self._lock:
            self._cache.expire()
            removed = len(self._cache)
            self._cache.clear()
        return removed

    async def health_check(self) -> bool:
        return True


class DynamoDBCacheService:
    """
    DynamoDB-based cache with retry logic.

    Items carry an ``expires_at`` epoch so the table's TTL attribute removes
    them eventually; reads treat expired items as misses. Any DynamoDB error
    degrades to a cache miss.
    """

    backend = "dynamodb"

    def __init__(
        self,
        table_name: Optional[str] = None,
        ttl_seconds: int = 600,
        region: Optional[str] = None,
    ):
        """
        Args:
            table_name: DynamoDB table name (defaults to environment variable)
            ttl_seconds: Cache TTL in seconds
            region: AWS region (defaults to config value)
        """
        self.table_name = table_name or os.getenv("DYNAMODB_TABLE_NAME")
        self.ttl_seconds = ttl_seconds
        self.region = region or AppConfig.AWS_REGION

        self.retry_config = RetryConfigClass(
            max_attempts=RetryConfig.DYNAMODB_MAX_ATTEMPTS,
            base_delay=RetryConfig.DYNAMODB_BASE_DELAY,
            backoff_multiplier=RetryConfig.DYNAMODB_BACKOFF_MULTIPLIER,
            max_delay=RetryConfig.DYNAMODB_MAX_DELAY,
            jitter=RetryConfig.DYNAMODB_JITTER,
            jitter_range=RetryConfig.DYNAMODB_JITTER_RANGE,
        )

        if not self.table_name:
            raise CacheError("DynamoDB table name not provided")

        try:
            self.dynamodb = boto3.resource("dynamodb", region_name=self.region)
            self.table = self.dynamodb.Table(self.table_name)
            logger.info(
                "Initialized DynamoDB cache for table %s in %s",
                self.table_name,
                self.region,
            )
        except (NoCredentialsError, ClientError) as e:
            logger.error("Failed to initialize DynamoDB: %s", e)
            raise CacheError(f"DynamoDB initialization failed: {e}") from e

    @staticmethod
    def _partition_key(key: str) -> str:
        return f"CACHE#{key}"

    @staticmethod
    def _now() -> int:
        return int(datetime.now(timezone.utc).timestamp())

    def _expires_at(self) -> int:
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        return int(expires.timestamp())

    async def get(self, key: str) -> Optional[WeatherResponse]:
        @dynamodb_retry(self.retry_config)
        def _get_with_retry() -> Optional[WeatherResponse]:
            response = self.table.get_item(
                Key={"PK": self._partition_key(key), "SK": "DATA"}
            )
            item = response.get("Item")
            if not item:
                logger.debug("Cache miss for %s", key)
                return None
            if int(item.get("expires_at", 0)) <= self._now():
                logger.debug("Cache expired for %s", key)
                return None
            logger.debug("Cache hit for %s", key)
            return WeatherResponse.model_validate_json(item["payload"])

        try:
            return _get_with_retry()
        except (ClientError, RetryError, ValueError) as e:
            logger.error("DynamoDB error reading %s: %s", key, e)
            return None

    async def set(self, key: str, value: WeatherResponse) -> bool:
        @dynamodb_retry(self.retry_config)
        def _set_with_retry() -> bool:
            self.table.put_item(
                Item={
                    "PK": self._partition_key(key),
                    "SK": "DATA",
                    "payload": value.model_dump_json(by_alias=True),
                    "expires_at": self._expires_at(),
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            logger.debug("Cached %s", key)
            return True

        try:
            return _set_with_retry()
        except (ClientError, RetryError) as e:
            logger.error("DynamoDB error caching %s: %s", key, e)
            return False

    async def clear(self) -> int:
        """Delete every cache item from the table and return the count."""

        @dynamodb_retry(self.retry_config)
        def _scan_page_with_retry(scan_kwargs: Dict[str, Any]) -> Dict[str, Any]:
            return self.table.scan(**scan_kwargs)

        removed = 0
        scan_kwargs: Dict[str, Any] = {
            "ProjectionExpression": "PK, SK",
            "FilterExpression": "begins_with(PK, :prefix)",
            "ExpressionAttributeValues": {":prefix": "CACHE#"},
        }
        try:
            with self.table.batch_writer() as batch:
                while True:
                    page = _scan_page_with_retry(scan_kwargs)
                    for item in page.get("Items", []):
                        batch.delete_item(Key={"PK": item["PK"], "SK": item["SK"]})
                        removed += 1
                    last_key = page.get("LastEvaluatedKey")
                    if not last_key:
                        return removed
                    scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, RetryError) as e:
            logger.error("DynamoDB error clearing cache: %s", e)
            raise CacheError(f"Failed to clear cache: {e}") from e

    async def health_check(self) -> bool:
        @dynamodb_retry(self.retry_config)
        def _health_check_with_retry() -> bool:
            self.table.meta.client.describe_table(TableName=self.table_name)
            return True

        try:
            return _health_check_with_retry()
        except (ClientError, RetryError) as e:
            logger.error("Cache health check failed: %s", e)
            return False


def create_cache_service(backend: Optional[str] = None):
    """
    Build the configured cache backend.

    Falls back to the in-memory cache when DynamoDB cannot be initialized.
    """
    backend = (backend or AppConfig.CACHE_BACKEND).lower()

    if backend == "dynamodb":
        try:
            return DynamoDBCacheService(
                table_name=AppConfig.DYNAMODB_TABLE_NAME or None,
                ttl_seconds=AppConfig.CACHE_TTL_SECONDS,
            )
        except CacheError as e:
            logger.warning("Falling back to in-memory cache: %s", e)
    elif backend != "memory":
        logger.warning("Unknown cache backend '%s', using in-memory cache", backend)

    return InMemoryCacheService(
        ttl_seconds=AppConfig.CACHE_TTL_SECONDS,
        max_entries=AppConfig.CACHE_MAX_ENTRIES,
    )
