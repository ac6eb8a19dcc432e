"""
Retry helpers with exponential backoff and jitter.

Upstream HTTP calls and DynamoDB operations are wrapped with these decorators
so transient failures (timeouts, 5xx, throttling) are retried while client
errors surface immediately.
"""

import asyncio
import functools
import logging
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import aiohttp
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

NON_RETRYABLE_DYNAMODB_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "InvalidParameterValue",
        "ValidationException",
        "ResourceNotFound",
        "ResourceNotFoundException",
        "ItemNotFound",
    }
)

RETRYABLE_DYNAMODB_CODES = frozenset(
    {
        "ThrottlingException",
        "ProvisionedThroughputExceededException",
        "RequestLimitExceeded",
        "ServiceUnavailable",
        "InternalServerError",
    }
)


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception]):
        self.message = message
        self.last_exception = last_exception
        super().__init__(message)


class RetryConfig:
    """Backoff parameters for one family of operations."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_delay: float = 60.0,
        jitter: bool = True,
        jitter_range: float = 0.1,
    ):
        """
        Args:
            max_attempts: Total number of attempts, the first call included
            base_delay: Delay in seconds before the first retry
            backoff_multiplier: Growth factor applied per attempt
            max_delay: Upper bound for a single delay
            jitter: Whether to randomize each delay
            jitter_range: Jitter as a fraction of the delay (0.1 = ±10%)
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.jitter_range = jitter_range


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Delay to wait after a failed attempt.

    Args:
        attempt: The attempt that just failed (1-based)
        config: Retry configuration

    Returns:
        Delay in seconds, never negative
    """
    delay = min(
        config.base_delay * (config.backoff_multiplier ** (attempt - 1)),
        config.max_delay,
    )

    if config.jitter:
        spread = delay * config.jitter_range
        delay = max(0.0, delay + random.uniform(-spread, spread))

    return delay


def should_retry_exception(
    exception: Exception, retryable_exceptions: Tuple[Type[Exception], ...]
) -> bool:
    """
    Decide whether an exception is transient.

    Client-side HTTP errors (4xx) and DynamoDB validation/access errors are
    never retried even when their type is listed as retryable.
    """
    if not isinstance(exception, retryable_exceptions):
        return False

    if isinstance(exception, aiohttp.ClientResponseError):
        return not 400 <= exception.status < 500

    if isinstance(exception, ClientError):
        code = exception.response.get("Error", {}).get("Code", "")
        if code in NON_RETRYABLE_DYNAMODB_CODES:
            return False
        return code in RETRYABLE_DYNAMODB_CODES or code.startswith("5")

    return True


def _delay_or_raise(
    func_name: str,
    attempt: int,
    config: RetryConfig,
    exc: Exception,
    retryable_exceptions: Tuple[Type[Exception], ...],
) -> Optional[float]:
    """Re-raise non-retryable errors; return the next delay, or None when exhausted."""
    if not should_retry_exception(exc, retryable_exceptions):
        logger.warning(
            "Function %s failed with non-retryable exception: %s", func_name, exc
        )
        raise exc

    if attempt == config.max_attempts:
        logger.error(
            "Function %s failed after %d attempts. Last error: %s",
            func_name,
            config.max_attempts,
            exc,
        )
        return None

    delay = calculate_delay(attempt, config)
    logger.warning(
        "Function %s failed on attempt %d/%d: %s. Retrying in %.2f seconds",
        func_name,
        attempt,
        config.max_attempts,
        exc,
        delay,
    )
    return delay


def _log_recovery(func_name: str, attempt: int, config: RetryConfig) -> None:
    if attempt > 1:
        logger.info(
            "Function %s succeeded on attempt %d/%d",
            func_name,
            attempt,
            config.max_attempts,
        )


def _exhausted(func_name: str, config: RetryConfig, last: Exception) -> RetryError:
    return RetryError(
        f"Function {func_name} failed after {config.max_attempts} attempts", last
    )


def retry_sync(
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """Decorator retrying a blocking function."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            last_exception = None
            for attempt in range(1, config.max_attempts + 1):
                try:
                    result = func(*args, **kwargs)
                except Exception as e:  # pylint: disable=broad-exception-caught
                    last_exception = e
                    delay = _delay_or_raise(
                        func.__name__, attempt, config, e, retryable_exceptions
                    )
                    if delay is None:
                        break
                    time.sleep(delay)
                else:
                    _log_recovery(func.__name__, attempt, config)
                    return result

            raise _exhausted(func.__name__, config, last_exception)

        return wrapper

    return decorator


def retry_async(
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """Decorator retrying a coroutine function."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            last_exception = None
            for attempt in range(1, config.max_attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:  # pylint: disable=broad-exception-caught
                    last_exception = e
                    delay = _delay_or_raise(
                        func.__name__, attempt, config, e, retryable_exceptions
                    )
                    if delay is None:
                        break
                    await asyncio.sleep(delay)
                else:
                    _log_recovery(func.__name__, attempt, config)
                    return result

            raise _exhausted(func.__name__, config, last_exception)

        return wrapper

    return decorator


def api_retry(config: RetryConfig) -> Callable:
    """
    Retry decorator for upstream HTTP calls.

    Retries network errors, timeouts and 5xx responses; 4xx are not retried.
    """
    retryable_exceptions = (
        aiohttp.ClientError,
        asyncio.TimeoutError,
        ConnectionError,
    )
    return retry_async(config, retryable_exceptions)


def dynamodb_retry(config: RetryConfig) -> Callable:
    """
    Retry decorator for blocking DynamoDB calls.

    Retries throttling and server errors; validation failures are not retried.
    """
    return retry_sync(config, (ClientError,))
